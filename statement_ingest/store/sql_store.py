"""
SQLAlchemy-backed document store.

One short transaction per call. SQLAlchemyError is wrapped as StoreError so
callers never see driver exceptions.
"""

from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import Any, AsyncIterator, Optional

import structlog
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from statement_ingest.errors import BatchFinalizedError, StoreError
from statement_ingest.models.database import (
    Base,
    create_engine_from_settings,
    create_session_factory,
)
from statement_ingest.models.tables import (
    AccountRow,
    CategoryRuleRow,
    TransactionRow,
    UploadBatchRow,
)
from statement_ingest.schemas.records import (
    Account,
    CategoryRule,
    NormalizedTransaction,
    UploadBatch,
    utcnow,
)
from statement_ingest.store.base import DocumentStore

logger = structlog.get_logger(__name__)


# ── Row <-> record mapping ───────────────────────────────────

def _transaction_to_row(t: NormalizedTransaction) -> TransactionRow:
    data = t.model_dump(mode="python")
    data["txn_date"] = data.pop("date")
    data["kind"] = t.kind.value
    data["source_format"] = t.source_format.value
    return TransactionRow(**data)


def _row_to_transaction(row: TransactionRow) -> NormalizedTransaction:
    return NormalizedTransaction(
        id=row.id,
        owner_id=row.owner_id,
        date=row.txn_date,
        amount=row.amount,
        kind=row.kind,
        description_raw=row.description_raw,
        description_cleaned=row.description_cleaned,
        merchant_name_guess=row.merchant_name_guess,
        account_id=row.account_id,
        upload_batch_id=row.upload_batch_id,
        category_id=row.category_id,
        category_confidence=row.category_confidence,
        is_duplicate_of=row.is_duplicate_of,
        parser_confidence=row.parser_confidence,
        source_format=row.source_format,
        external_id=row.external_id,
        raw_payload=row.raw_payload or {},
    )


def _apply_batch(row: UploadBatchRow, batch: UploadBatch) -> None:
    data = batch.model_dump(mode="json", exclude={"id"})
    # keep native datetimes for DateTime columns
    for key in ("processing_started_at", "processing_completed_at", "created_at", "updated_at"):
        data[key] = getattr(batch, key)
    for key, value in data.items():
        setattr(row, key, value)


class SqlDocumentStore(DocumentStore):

    def __init__(self, engine: Optional[AsyncEngine] = None, database_url: Optional[str] = None):
        self.engine = engine or create_engine_from_settings(database_url)
        self._session_factory = create_session_factory(self.engine)

    async def create_schema(self) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise StoreError(f"Schema creation failed: {e}") from e
        logger.info("store_schema_ready", backend="sql")

    async def close(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            logger.error("store_operation_failed", operation=operation, error=str(e))
            raise StoreError(f"{operation} failed: {e}") from e

    # ── Accounts ─────────────────────────────────────────────

    async def create_account(self, account: Account) -> Account:
        async with self._session("create_account") as session:
            data = account.model_dump(mode="python")
            data["account_type_guess"] = account.account_type_guess.value
            session.add(AccountRow(**data))
        return account

    async def list_accounts(self, owner_id: str) -> list[Account]:
        async with self._session("list_accounts") as session:
            result = await session.execute(
                select(AccountRow)
                .where(AccountRow.owner_id == owner_id)
                .order_by(AccountRow.created_at)
            )
            return [Account.model_validate(row) for row in result.scalars()]

    async def update_account_stats(
        self,
        account_id: str,
        transaction_count: int,
        last_transaction_date: Optional[date],
    ) -> Account:
        async with self._session("update_account_stats") as session:
            row = await session.get(AccountRow, account_id)
            if row is None:
                raise StoreError(f"Account {account_id} not found")
            now = utcnow()
            row.transaction_count = row.transaction_count + transaction_count
            if last_transaction_date and (
                row.last_transaction_date is None or last_transaction_date > row.last_transaction_date
            ):
                row.last_transaction_date = last_transaction_date
            row.last_upload_at = now
            row.updated_at = now
            await session.flush()
            return Account.model_validate(row)

    # ── Category rules ───────────────────────────────────────

    async def create_category_rule(self, rule: CategoryRule) -> CategoryRule:
        async with self._session("create_category_rule") as session:
            seq = await session.scalar(
                select(func.coalesce(func.max(CategoryRuleRow.seq), 0))
                .where(CategoryRuleRow.owner_id == rule.owner_id)
            )
            session.add(CategoryRuleRow(**rule.model_dump(mode="python"), seq=(seq or 0) + 1))
        return rule

    async def list_category_rules(self, owner_id: str) -> list[CategoryRule]:
        async with self._session("list_category_rules") as session:
            result = await session.execute(
                select(CategoryRuleRow)
                .where(CategoryRuleRow.owner_id == owner_id)
                .order_by(CategoryRuleRow.sort_order, CategoryRuleRow.seq)
            )
            return [CategoryRule.model_validate(row) for row in result.scalars()]

    async def increment_category_usage(self, category_id: str, amount: Decimal) -> None:
        async with self._session("increment_category_usage") as session:
            row = await session.get(CategoryRuleRow, category_id)
            if row is None:
                raise StoreError(f"Category rule {category_id} not found")
            row.usage_count = row.usage_count + 1
            row.total_amount = Decimal(row.total_amount) + abs(Decimal(amount))
            row.last_used_at = utcnow()

    # ── Transactions ─────────────────────────────────────────

    async def save_transaction(self, transaction: NormalizedTransaction) -> NormalizedTransaction:
        async with self._session("save_transaction") as session:
            session.add(_transaction_to_row(transaction))
        return transaction

    async def list_transactions(
        self,
        owner_id: str,
        start_date: date,
        end_date: date,
        limit: Optional[int] = None,
    ) -> list[NormalizedTransaction]:
        stmt = (
            select(TransactionRow)
            .where(
                TransactionRow.owner_id == owner_id,
                TransactionRow.txn_date >= start_date,
                TransactionRow.txn_date <= end_date,
            )
            .order_by(TransactionRow.txn_date, TransactionRow.id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._session("list_transactions") as session:
            result = await session.execute(stmt)
            return [_row_to_transaction(row) for row in result.scalars()]

    # ── Upload batches ───────────────────────────────────────

    async def create_upload_batch(self, batch: UploadBatch) -> UploadBatch:
        async with self._session("create_upload_batch") as session:
            row = UploadBatchRow(id=batch.id)
            _apply_batch(row, batch)
            session.add(row)
        return batch

    async def update_upload_batch(self, batch_id: str, patch: dict[str, Any]) -> UploadBatch:
        unknown = set(patch) - set(UploadBatch.model_fields)
        if unknown:
            raise StoreError(f"Unknown upload batch fields: {sorted(unknown)}")

        async with self._session("update_upload_batch") as session:
            row = await session.get(UploadBatchRow, batch_id, with_for_update=True)
            if row is None:
                raise StoreError(f"Upload batch {batch_id} not found")
            current = UploadBatch.model_validate(row)
            if current.is_terminal:
                raise BatchFinalizedError(f"Upload batch {batch_id} is already {current.status.value}")

            try:
                updated = UploadBatch.model_validate({
                    **current.model_dump(),
                    **patch,
                    "updated_at": utcnow(),
                })
            except ValidationError as e:
                raise StoreError(f"Invalid upload batch patch: {e}") from e

            _apply_batch(row, updated)
            return updated

    async def get_upload_batch(self, batch_id: str) -> Optional[UploadBatch]:
        async with self._session("get_upload_batch") as session:
            row = await session.get(UploadBatchRow, batch_id)
            return UploadBatch.model_validate(row) if row else None

    async def list_upload_batches(self, owner_id: str) -> list[UploadBatch]:
        async with self._session("list_upload_batches") as session:
            result = await session.execute(
                select(UploadBatchRow)
                .where(UploadBatchRow.owner_id == owner_id)
                .order_by(UploadBatchRow.created_at.desc())
            )
            return [UploadBatch.model_validate(row) for row in result.scalars()]
