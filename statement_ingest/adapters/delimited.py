"""
Delimited-text adapter (CSV / TXT exports).

Locates the header inside the first few lines, picks a column mapping from
the header fingerprint, then reads rows with csv.reader. Exports with
separate Debit and Credit columns get a signed amount of credit minus
debit. Rows without a usable date, description or amount are dropped.
"""

import csv
import io
import re
import time
from dataclasses import dataclass
from typing import Optional

import structlog

from statement_ingest.adapters.base import FormatAdapter, coerce_row, decode_text, split_amount
from statement_ingest.config import settings
from statement_ingest.errors import MalformedInputError
from statement_ingest.models.enums import SourceFormat
from statement_ingest.observability.metrics import parse_duration_seconds
from statement_ingest.schemas.records import DelimitedTextTransaction

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ColumnMapping:
    name: str
    date_field: str
    description_field: str
    amount_field: str
    type_field: Optional[str] = None


# Card-style exports lead with "Transaction Date"
CARD_MAPPING = ColumnMapping("card", "transaction date", "description", "amount", "type")
BANK_MAPPING = ColumnMapping("bank", "date", "description", "amount")
DEFAULT_MAPPING = ColumnMapping("default", "date", "description", "amount")

# Used when a mapped field is missing from the actual header
FUZZY_FIELDS = {
    "date_field": re.compile(r"date|posting|trans.*date", re.IGNORECASE),
    "description_field": re.compile(r"description|memo|detail|narrative|payee", re.IGNORECASE),
    "amount_field": re.compile(r"amount", re.IGNORECASE),
    "type_field": re.compile(r"type|dr/cr|debit/credit", re.IGNORECASE),
}

# Separate money-out / money-in columns, only read as a pair
SPLIT_FIELDS = {
    "debit_field": re.compile(r"debit|withdrawal|paid out|money out", re.IGNORECASE),
    "credit_field": re.compile(r"credit|deposit|paid in|money in", re.IGNORECASE),
}


def _is_split_header(header: str) -> bool:
    if FUZZY_FIELDS["type_field"].search(header):
        return False
    return any(pattern.search(header) for pattern in SPLIT_FIELDS.values())


def detect_mapping(header_line: str) -> ColumnMapping:
    """Pick a column mapping from the header line fingerprint."""
    lowered = header_line.lower()
    if "transaction date" in lowered:
        return CARD_MAPPING
    if "date" in lowered and "description" in lowered:
        return BANK_MAPPING
    return DEFAULT_MAPPING


def find_header_line(lines: list[str]) -> int:
    """
    Index of the header line within the sniffed window.
    A line qualifies when it names a date column and either a description
    or an amount column. Defaults to the first line.
    """
    for idx, line in enumerate(lines):
        lowered = line.lower()
        if "date" in lowered and ("description" in lowered or "amount" in lowered):
            return idx
    return 0


def resolve_columns(mapping: ColumnMapping, headers: list[str]) -> dict[str, Optional[str]]:
    """
    Map each role to an actual (normalized) header name, or None.

    When no amount column exists, a Debit/Credit pair fills debit_field and
    credit_field. A lone debit or credit column is never read as the amount.
    """
    resolved: dict[str, Optional[str]] = {}
    for role in ("date_field", "description_field", "amount_field", "type_field"):
        wanted = getattr(mapping, role)
        if wanted and wanted in headers:
            resolved[role] = wanted
            continue
        resolved[role] = None
        if role == "type_field" and wanted is None:
            continue
        pattern = FUZZY_FIELDS[role]
        taken = set(resolved.values())
        for header in headers:
            if header in taken or not pattern.search(header):
                continue
            if role == "amount_field" and _is_split_header(header):
                continue
            resolved[role] = header
            break

    resolved["debit_field"] = resolved["credit_field"] = None
    if resolved["amount_field"] is None:
        taken = set(resolved.values())
        pair = {
            role: next(
                (h for h in headers if h not in taken and _is_split_header(h) and pattern.search(h)),
                None,
            )
            for role, pattern in SPLIT_FIELDS.items()
        }
        if all(pair.values()) and pair["debit_field"] != pair["credit_field"]:
            resolved.update(pair)
    return resolved


class DelimitedTextAdapter(FormatAdapter):
    """CSV adapter using the stdlib csv module."""

    def __init__(self, confidence: Optional[float] = None, sniff_lines: Optional[int] = None):
        self.confidence = confidence if confidence is not None else settings.CONFIDENCE_DELIMITED_TEXT
        self.sniff_lines = sniff_lines or settings.CSV_SNIFF_LINES

    @property
    def source_format(self) -> SourceFormat:
        return SourceFormat.DELIMITED_TEXT

    @property
    def adapter_name(self) -> str:
        return "csv"

    async def parse(self, file_bytes: bytes, file_name: str) -> list[DelimitedTextTransaction]:
        start = time.monotonic()
        text = decode_text(file_bytes)

        lines = text.splitlines(keepends=True)
        header_idx = find_header_line(lines[: self.sniff_lines])
        header_line = lines[header_idx] if lines else ""
        mapping = detect_mapping(header_line)

        stream = io.StringIO("".join(lines[header_idx:]))
        reader = csv.reader(stream)

        try:
            raw_headers = next(reader, None)
            if raw_headers is None:
                raise MalformedInputError(f"{file_name}: file is empty")
            headers = [h.strip().lower() for h in raw_headers]
            columns = resolve_columns(mapping, headers)

            transactions = []
            for offset, row in enumerate(reader, start=1):
                row_number = header_idx + offset + 1
                if not any(cell.strip() for cell in row):
                    continue
                record = dict(zip(headers, (cell.strip() for cell in row)))
                if columns["debit_field"]:
                    raw_amount = split_amount(record.get(columns["debit_field"]), record.get(columns["credit_field"]))
                else:
                    raw_amount = record.get(columns["amount_field"]) if columns["amount_field"] else None
                fields = coerce_row(
                    record.get(columns["date_field"]) if columns["date_field"] else None,
                    record.get(columns["description_field"]) if columns["description_field"] else None,
                    raw_amount,
                    record.get(columns["type_field"]) if columns["type_field"] else None,
                )
                if fields is None:
                    logger.debug("csv_row_dropped", file_name=file_name, row_number=row_number)
                    continue

                transactions.append(DelimitedTextTransaction(
                    date=fields.date,
                    description=fields.description,
                    amount=fields.amount,
                    confidence=self.confidence,
                    raw_payload={k: v for k, v in zip(raw_headers, row)},
                    row_number=row_number,
                ))
        except csv.Error as e:
            raise MalformedInputError(f"CSV parsing error: {e}") from e

        parse_duration_seconds.labels(source_format=self.source_format.value).observe(
            time.monotonic() - start
        )
        logger.info(
            "csv_parsed",
            file_name=file_name,
            mapping=mapping.name,
            header_line=header_idx,
            transactions=len(transactions),
        )
        return transactions
