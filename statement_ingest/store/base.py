"""
Document store interface.

The pipeline talks to persistence only through DocumentStore. Components that
need a narrow slice of it depend on the capability protocols below instead.
Implementations raise StoreError on failure, and BatchFinalizedError when a
terminal upload batch is patched.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Protocol

from statement_ingest.schemas.records import (
    Account,
    CategoryRule,
    NormalizedTransaction,
    UploadBatch,
)


class TransactionHistoryRepository(Protocol):
    async def list_transactions(
        self,
        owner_id: str,
        start_date: date,
        end_date: date,
        limit: Optional[int] = None,
    ) -> list[NormalizedTransaction]:
        ...


class CategoryRuleRepository(Protocol):
    async def list_category_rules(self, owner_id: str) -> list[CategoryRule]:
        ...


class DocumentStore(ABC):

    # ── Accounts ─────────────────────────────────────────────

    @abstractmethod
    async def create_account(self, account: Account) -> Account:
        ...

    @abstractmethod
    async def list_accounts(self, owner_id: str) -> list[Account]:
        ...

    @abstractmethod
    async def update_account_stats(
        self,
        account_id: str,
        transaction_count: int,
        last_transaction_date: Optional[date],
    ) -> Account:
        """
        Add transaction_count to the account's running count, move
        last_transaction_date forward (never back) and stamp last_upload_at.
        """
        ...

    # ── Category rules ───────────────────────────────────────

    @abstractmethod
    async def create_category_rule(self, rule: CategoryRule) -> CategoryRule:
        ...

    @abstractmethod
    async def list_category_rules(self, owner_id: str) -> list[CategoryRule]:
        """Rules ordered by sort_order, then insertion order."""
        ...

    @abstractmethod
    async def increment_category_usage(self, category_id: str, amount: Decimal) -> None:
        """usage_count += 1, total_amount += |amount|, last_used_at = now."""
        ...

    # ── Transactions ─────────────────────────────────────────

    @abstractmethod
    async def save_transaction(self, transaction: NormalizedTransaction) -> NormalizedTransaction:
        ...

    @abstractmethod
    async def list_transactions(
        self,
        owner_id: str,
        start_date: date,
        end_date: date,
        limit: Optional[int] = None,
    ) -> list[NormalizedTransaction]:
        """Owner's transactions dated within [start_date, end_date], oldest first."""
        ...

    # ── Upload batches ───────────────────────────────────────

    @abstractmethod
    async def create_upload_batch(self, batch: UploadBatch) -> UploadBatch:
        ...

    @abstractmethod
    async def update_upload_batch(self, batch_id: str, patch: dict[str, Any]) -> UploadBatch:
        ...

    @abstractmethod
    async def get_upload_batch(self, batch_id: str) -> Optional[UploadBatch]:
        ...

    @abstractmethod
    async def list_upload_batches(self, owner_id: str) -> list[UploadBatch]:
        """Newest first."""
        ...

    async def close(self) -> None:
        return None
