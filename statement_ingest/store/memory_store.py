"""
In-process document store for tests and single-process local runs.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from statement_ingest.errors import BatchFinalizedError, StoreError
from statement_ingest.schemas.records import (
    Account,
    CategoryRule,
    NormalizedTransaction,
    UploadBatch,
    utcnow,
)
from statement_ingest.store.base import DocumentStore

logger = structlog.get_logger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store. Returned models are copies; mutate through the API only."""

    def __init__(self):
        self._accounts: dict[str, Account] = {}
        self._rules: dict[str, CategoryRule] = {}
        self._transactions: dict[str, NormalizedTransaction] = {}
        self._batches: dict[str, UploadBatch] = {}

    # ── Accounts ─────────────────────────────────────────────

    async def create_account(self, account: Account) -> Account:
        if account.id in self._accounts:
            raise StoreError(f"Account {account.id} already exists")
        self._accounts[account.id] = account.model_copy(deep=True)
        return account.model_copy(deep=True)

    async def list_accounts(self, owner_id: str) -> list[Account]:
        return [a.model_copy(deep=True) for a in self._accounts.values() if a.owner_id == owner_id]

    async def update_account_stats(
        self,
        account_id: str,
        transaction_count: int,
        last_transaction_date: Optional[date],
    ) -> Account:
        account = self._accounts.get(account_id)
        if account is None:
            raise StoreError(f"Account {account_id} not found")

        now = utcnow()
        latest = account.last_transaction_date
        if last_transaction_date and (latest is None or last_transaction_date > latest):
            latest = last_transaction_date

        updated = account.model_copy(update={
            "transaction_count": account.transaction_count + transaction_count,
            "last_transaction_date": latest,
            "last_upload_at": now,
            "updated_at": now,
        })
        self._accounts[account_id] = updated
        return updated.model_copy(deep=True)

    # ── Category rules ───────────────────────────────────────

    async def create_category_rule(self, rule: CategoryRule) -> CategoryRule:
        if rule.id in self._rules:
            raise StoreError(f"Category rule {rule.id} already exists")
        self._rules[rule.id] = rule.model_copy(deep=True)
        return rule.model_copy(deep=True)

    async def list_category_rules(self, owner_id: str) -> list[CategoryRule]:
        owned = [r for r in self._rules.values() if r.owner_id == owner_id]
        # sorted() is stable, so insertion order breaks sort_order ties
        return [r.model_copy(deep=True) for r in sorted(owned, key=lambda r: r.sort_order)]

    async def increment_category_usage(self, category_id: str, amount: Decimal) -> None:
        rule = self._rules.get(category_id)
        if rule is None:
            raise StoreError(f"Category rule {category_id} not found")
        self._rules[category_id] = rule.model_copy(update={
            "usage_count": rule.usage_count + 1,
            "total_amount": rule.total_amount + abs(Decimal(amount)),
            "last_used_at": utcnow(),
        })

    # ── Transactions ─────────────────────────────────────────

    async def save_transaction(self, transaction: NormalizedTransaction) -> NormalizedTransaction:
        if transaction.id in self._transactions:
            raise StoreError(f"Transaction {transaction.id} already exists")
        self._transactions[transaction.id] = transaction
        return transaction

    async def list_transactions(
        self,
        owner_id: str,
        start_date: date,
        end_date: date,
        limit: Optional[int] = None,
    ) -> list[NormalizedTransaction]:
        matches = [
            t for t in self._transactions.values()
            if t.owner_id == owner_id and start_date <= t.date <= end_date
        ]
        matches.sort(key=lambda t: t.date)
        if limit is not None:
            matches = matches[:limit]
        return matches

    # ── Upload batches ───────────────────────────────────────

    async def create_upload_batch(self, batch: UploadBatch) -> UploadBatch:
        if batch.id in self._batches:
            raise StoreError(f"Upload batch {batch.id} already exists")
        self._batches[batch.id] = batch.model_copy(deep=True)
        return batch.model_copy(deep=True)

    async def update_upload_batch(self, batch_id: str, patch: dict[str, Any]) -> UploadBatch:
        batch = self._batches.get(batch_id)
        if batch is None:
            raise StoreError(f"Upload batch {batch_id} not found")
        if batch.is_terminal:
            raise BatchFinalizedError(f"Upload batch {batch_id} is already {batch.status.value}")

        unknown = set(patch) - set(UploadBatch.model_fields)
        if unknown:
            raise StoreError(f"Unknown upload batch fields: {sorted(unknown)}")

        try:
            updated = UploadBatch.model_validate({
                **batch.model_dump(),
                **patch,
                "updated_at": utcnow(),
            })
        except ValidationError as e:
            raise StoreError(f"Invalid upload batch patch: {e}") from e

        self._batches[batch_id] = updated
        return updated.model_copy(deep=True)

    async def get_upload_batch(self, batch_id: str) -> Optional[UploadBatch]:
        batch = self._batches.get(batch_id)
        return batch.model_copy(deep=True) if batch else None

    async def list_upload_batches(self, owner_id: str) -> list[UploadBatch]:
        owned = [b for b in reversed(list(self._batches.values())) if b.owner_id == owner_id]
        owned.sort(key=lambda b: b.created_at, reverse=True)
        return [b.model_copy(deep=True) for b in owned]
