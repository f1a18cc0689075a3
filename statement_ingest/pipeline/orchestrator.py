"""
Ingestion orchestrator: drives one statement file end to end.

Stages: OPEN BATCH → PARSE → RESOLVE ACCOUNT → PER-RECORD
(normalize → dedup → categorize → persist) → FINALIZE → ACCOUNT STATS

The upload batch is the single record of the outcome. File-level failures
finalize it as failed; record-level failures are counted on it and the loop
moves on.
"""

import time
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

import structlog

from statement_ingest.adapters.document_ai import DocumentUnderstandingClient
from statement_ingest.adapters.google_docai import build_document_client
from statement_ingest.config import settings
from statement_ingest.errors import TransactionProcessingError
from statement_ingest.models.enums import RecordOutcome, UploadStatus
from statement_ingest.observability.logging import ingestion_context
from statement_ingest.observability.metrics import (
    ingestion_duration_seconds,
    transactions_categorized_total,
    transactions_ingested_total,
    uploads_finalized_total,
    uploads_started_total,
)
from statement_ingest.pipeline.account_resolver import AccountResolver
from statement_ingest.pipeline.categorizer import Categorizer
from statement_ingest.pipeline.duplicate_detector import DuplicateDetector
from statement_ingest.pipeline.format_parser import FormatParser, file_extension
from statement_ingest.pipeline.normalizer import normalize
from statement_ingest.schemas.records import (
    Account,
    CategorizationSummary,
    CategoryMatch,
    NormalizedTransaction,
    ParsedTransaction,
    UploadBatch,
    utcnow,
)
from statement_ingest.store.base import DocumentStore
from statement_ingest.store.seed import seed_default_categories

logger = structlog.get_logger(__name__)


@dataclass
class IngestionTally:
    """Per-record outcomes for one file."""

    total: int = 0
    saved: list[NormalizedTransaction] = field(default_factory=list)
    duplicates: list[NormalizedTransaction] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    auto_categorized: int = 0

    def record_saved(self, transaction: NormalizedTransaction) -> None:
        self.saved.append(transaction)
        if transaction.is_categorized:
            self.auto_categorized += 1
        transactions_ingested_total.labels(outcome=RecordOutcome.SAVED.value).inc()

    def record_duplicate(self, transaction: NormalizedTransaction) -> None:
        self.duplicates.append(transaction)
        self.warnings.append(
            f"Duplicate transaction detected: {transaction.description_raw} on {transaction.date.isoformat()}"
        )
        transactions_ingested_total.labels(outcome=RecordOutcome.DUPLICATE.value).inc()

    def record_failure(self, error: TransactionProcessingError) -> None:
        self.failures.append(error.message)
        transactions_ingested_total.labels(outcome=RecordOutcome.FAILED.value).inc()

    @property
    def processed(self) -> int:
        return len(self.saved)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicates)

    @property
    def is_balanced(self) -> bool:
        return self.processed + self.failed + self.duplicate_count == self.total

    @property
    def mean_confidence(self) -> float:
        if not self.saved:
            return 0.0
        return sum(t.parser_confidence for t in self.saved) / len(self.saved)

    @property
    def last_transaction_date(self) -> Optional[date]:
        return max((t.date for t in self.saved), default=None)

    def summary(self) -> CategorizationSummary:
        return CategorizationSummary(
            automatically_categorized=self.auto_categorized,
            needs_review=self.processed - self.auto_categorized,
            confidence=round(self.mean_confidence, 4),
        )


class IngestionPipeline:
    """
    Main ingestion pipeline.
    Processes a single uploaded file through every stage.
    """

    def __init__(
        self,
        store: DocumentStore,
        format_parser: Optional[FormatParser] = None,
        document_client: Optional[DocumentUnderstandingClient] = None,
        seed_categories: Optional[bool] = None,
    ):
        self.store = store
        if format_parser is None:
            format_parser = FormatParser(document_client=document_client or build_document_client())
        self.format_parser = format_parser
        self.account_resolver = AccountResolver(store)
        self.seed_categories = settings.SEED_DEFAULT_CATEGORIES if seed_categories is None else seed_categories

    async def ingest(
        self,
        file_bytes: bytes,
        file_name: str,
        declared_mime_type: Optional[str],
        owner_id: str,
    ) -> UploadBatch:
        """
        Main entry point: ingest one file for one owner.
        Returns the finalized upload batch.
        """
        started_at = time.monotonic()

        # ── Open batch ── (a failure here propagates; there is nothing to finalize)
        batch = await self.store.create_upload_batch(UploadBatch(
            owner_id=owner_id,
            file_name=file_name,
            file_size=len(file_bytes),
            file_type=file_extension(file_name).lstrip(".") or declared_mime_type or "unknown",
            status=UploadStatus.PROCESSING,
            processing_started_at=utcnow(),
        ))
        uploads_started_total.inc()
        with ingestion_context(upload_batch_id=batch.id, owner_id=owner_id, file_name=file_name):
            return await self._run(batch, file_bytes, file_name, declared_mime_type, owner_id, started_at)

    async def _run(
        self,
        batch: UploadBatch,
        file_bytes: bytes,
        file_name: str,
        declared_mime_type: Optional[str],
        owner_id: str,
        started_at: float,
    ) -> UploadBatch:
        logger.info("ingestion_started", file_size=len(file_bytes))

        # ── Parse ──
        try:
            parsed = await self.format_parser.parse(file_bytes, file_name, declared_mime_type)
        except Exception as e:
            return await self._fail(batch, e, started_at)

        # ── Resolve account ──
        try:
            account = await self.account_resolver.resolve(owner_id, file_name)
        except Exception as e:
            return await self._fail(batch, e, started_at)

        if self.seed_categories:
            try:
                await seed_default_categories(self.store, owner_id)
            except Exception as e:
                logger.warning("category_seed_failed", error=str(e))

        # ── Records ──
        tally = await self._process_records(parsed, batch, account, owner_id)

        # ── Finalize ──
        if not tally.is_balanced:
            logger.error(
                "tally_unbalanced",
                total=tally.total,
                processed=tally.processed,
                failed=tally.failed,
                duplicates=tally.duplicate_count,
            )

        try:
            finalized = await self.store.update_upload_batch(batch.id, {
                "status": UploadStatus.COMPLETED,
                "account_id": account.id,
                "total_transactions": tally.total,
                "processed_transactions": tally.processed,
                "failed_transactions": tally.failed,
                "duplicate_count": tally.duplicate_count,
                "transaction_ids": [t.id for t in tally.saved],
                "errors": tally.failures,
                "warnings": tally.warnings,
                "categorization_summary": tally.summary(),
                "processing_completed_at": utcnow(),
            })
        except Exception as e:
            return await self._fail(batch, e, started_at)

        self._observe(UploadStatus.COMPLETED, started_at)
        logger.info(
            "ingestion_completed",
            total=tally.total,
            processed=tally.processed,
            failed=tally.failed,
            duplicates=tally.duplicate_count,
            auto_categorized=tally.auto_categorized,
        )

        # ── Account stats ── (never reopens the batch)
        try:
            await self.store.update_account_stats(account.id, tally.processed, tally.last_transaction_date)
        except Exception as e:
            logger.warning("account_stats_update_failed", account_id=account.id, error=str(e))

        return finalized

    # ─── Per-record processing ───────────────────────────────

    async def _process_records(
        self,
        parsed: list[ParsedTransaction],
        batch: UploadBatch,
        account: Account,
        owner_id: str,
    ) -> IngestionTally:
        detector = DuplicateDetector(self.store)
        categorizer = Categorizer(self.store)
        tally = IngestionTally(total=len(parsed))

        for record in parsed:
            try:
                transaction = normalize(record, owner_id, account.id, batch.id)

                if await detector.is_duplicate(transaction):
                    tally.record_duplicate(transaction)
                    continue

                match = await self._categorize(categorizer, transaction)
                if match is not None:
                    transaction = transaction.with_category(match.category_id, match.confidence)

                saved = await self.store.save_transaction(transaction)
            except Exception as e:
                error = TransactionProcessingError(record.description, e)
                tally.record_failure(error)
                logger.warning("transaction_failed", description=record.description, error=str(e))
                continue

            tally.record_saved(saved)

            if match is not None:
                transactions_categorized_total.inc()
                try:
                    await self.store.increment_category_usage(match.category_id, saved.amount)
                except Exception as e:
                    tally.warnings.append(
                        f"Category usage update failed: {saved.description_raw} - {e}"
                    )
                    logger.warning("category_usage_update_failed", category_id=match.category_id, error=str(e))

        return tally

    async def _categorize(
        self,
        categorizer: Categorizer,
        transaction: NormalizedTransaction,
    ) -> Optional[CategoryMatch]:
        """Best-effort; a failure leaves the record uncategorized."""
        try:
            return await categorizer.categorize(transaction)
        except Exception as e:
            logger.warning("categorization_failed", description=transaction.description_raw, error=str(e))
            return None

    # ─── Finalization helpers ────────────────────────────────

    async def _fail(self, batch: UploadBatch, error: Exception, started_at: float) -> UploadBatch:
        """Finalize the batch as failed with a single file-level error."""
        message = getattr(error, "message", None) or str(error)
        logger.error(
            "ingestion_failed",
            error_code=getattr(error, "error_code", "ERR_UNEXPECTED"),
            error=message,
        )
        finalized = await self.store.update_upload_batch(batch.id, {
            "status": UploadStatus.FAILED,
            "errors": [f"Processing failed: {message}"],
            "processing_completed_at": utcnow(),
        })
        self._observe(UploadStatus.FAILED, started_at)
        return finalized

    def _observe(self, status: UploadStatus, started_at: float) -> None:
        uploads_finalized_total.labels(status=status.value).inc()
        ingestion_duration_seconds.labels(status=status.value).observe(time.monotonic() - started_at)
