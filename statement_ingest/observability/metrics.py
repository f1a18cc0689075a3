"""
Prometheus metrics for the statement ingestion service.
"""

from prometheus_client import Counter, Histogram


# ── Upload Batches ───────────────────────────────────────────
uploads_started_total = Counter(
    "statement_uploads_started_total",
    "Total upload batches opened",
)

uploads_finalized_total = Counter(
    "statement_uploads_finalized_total",
    "Total upload batches finalized",
    ["status"],
)

ingestion_duration_seconds = Histogram(
    "statement_ingestion_duration_seconds",
    "Time to ingest one statement file end-to-end",
    ["status"],
    buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 120, 300, 600],
)

# ── Parsing ──────────────────────────────────────────────────
parse_duration_seconds = Histogram(
    "statement_parse_duration_seconds",
    "Time spent in a format adapter",
    ["source_format"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30],
)

parsed_transactions_total = Counter(
    "statement_parsed_transactions_total",
    "Transactions produced by format adapters",
    ["source_format"],
)

# ── Records ──────────────────────────────────────────────────
transactions_ingested_total = Counter(
    "statement_transactions_ingested_total",
    "Per-record ingestion outcomes",
    ["outcome"],  # saved, duplicate, failed
)

transactions_categorized_total = Counter(
    "statement_transactions_categorized_total",
    "Transactions auto-categorized above the confidence floor",
)

duplicate_check_failures_total = Counter(
    "statement_duplicate_check_failures_total",
    "History lookups that failed and were treated as not-duplicate",
)
