"""
Canonical record schemas.

ParsedTransaction is the adapter output: a tagged union keyed by
source_format, discarded once normalized. NormalizedTransaction, Account,
CategoryRule and UploadBatch are the documents the store persists.
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from statement_ingest.models.enums import (
    AccountType,
    SourceFormat,
    TransactionKind,
    UploadStatus,
)


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Adapter output ───────────────────────────────────────────

class _ParsedBase(BaseModel):
    date: date
    description: str
    amount: Decimal                 # source sign convention, not canonical yet
    confidence: float = Field(ge=0.0, le=1.0)
    raw_payload: dict = Field(default_factory=dict)


class DelimitedTextTransaction(_ParsedBase):
    source_format: Literal[SourceFormat.DELIMITED_TEXT] = SourceFormat.DELIMITED_TEXT
    row_number: int = 0


class SpreadsheetTransaction(_ParsedBase):
    source_format: Literal[SourceFormat.SPREADSHEET] = SourceFormat.SPREADSHEET
    row_number: int = 0


class FinancialExchangeTransaction(_ParsedBase):
    source_format: Literal[SourceFormat.FINANCIAL_EXCHANGE] = SourceFormat.FINANCIAL_EXCHANGE
    external_id: Optional[str] = None     # FITID supplied by the institution


class DocumentUnderstandingTransaction(_ParsedBase):
    source_format: Literal[SourceFormat.DOCUMENT_UNDERSTANDING] = SourceFormat.DOCUMENT_UNDERSTANDING
    entity_type: str = "transaction"


class ExtractedEntity(BaseModel):
    """One entity returned by a document-understanding service."""
    id: Optional[str] = None
    type: str
    mention_text: str = ""
    normalized_value: Optional[str] = None
    confidence: Optional[float] = None
    properties: list["ExtractedEntity"] = Field(default_factory=list)

    def property_text(self, name: str) -> Optional[str]:
        for prop in self.properties:
            if prop.type == name:
                return prop.normalized_value or prop.mention_text or None
        return None


ParsedTransaction = Annotated[
    Union[
        DelimitedTextTransaction,
        SpreadsheetTransaction,
        FinancialExchangeTransaction,
        DocumentUnderstandingTransaction,
    ],
    Field(discriminator="source_format"),
]


# ── Canonical transaction ────────────────────────────────────

class NormalizedTransaction(BaseModel):
    """
    Store-ready transaction. Frozen: category fields are only ever set
    through with_category(), which returns a copy.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str = Field(default_factory=new_id)
    owner_id: str
    date: date
    amount: Decimal                 # negative = money out
    kind: TransactionKind
    description_raw: str
    description_cleaned: str
    merchant_name_guess: Optional[str] = None
    account_id: str
    upload_batch_id: str
    category_id: Optional[str] = None
    category_confidence: Optional[float] = None
    is_duplicate_of: Optional[str] = None
    parser_confidence: float
    source_format: SourceFormat
    external_id: Optional[str] = None
    raw_payload: dict = Field(default_factory=dict)

    def with_category(self, category_id: str, confidence: float) -> "NormalizedTransaction":
        return self.model_copy(update={
            "category_id": category_id,
            "category_confidence": confidence,
        })

    @property
    def is_categorized(self) -> bool:
        return self.category_id is not None


# ── Accounts ─────────────────────────────────────────────────

class Account(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=new_id)
    owner_id: str
    display_name: str
    institution_name_guess: str
    account_type_guess: AccountType = AccountType.CHECKING
    transaction_count: int = 0
    last_transaction_date: Optional[date] = None
    last_upload_at: Optional[datetime] = None
    default_currency: str = "USD"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# ── Category rules ───────────────────────────────────────────

class CategoryRule(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=new_id)
    owner_id: str
    name: str
    description: Optional[str] = None
    keywords: list[str] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list)
    merchant_rules: list[str] = Field(default_factory=list)
    usage_count: int = 0
    total_amount: Decimal = Decimal("0")
    last_used_at: Optional[datetime] = None
    sort_order: int = 0
    is_active: bool = True
    is_tax_deductible: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class CategoryMatch(BaseModel):
    """Winning rule for one transaction."""
    category_id: str
    category_name: str
    confidence: float


# ── Upload batches ───────────────────────────────────────────

class CategorizationSummary(BaseModel):
    automatically_categorized: int = 0
    needs_review: int = 0
    confidence: float = 0.0          # mean parser confidence over processed records


class UploadBatch(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=new_id)
    owner_id: str
    file_name: str
    file_size: int = 0
    file_type: str = "unknown"
    status: UploadStatus = UploadStatus.UPLOADED
    account_id: Optional[str] = None
    total_transactions: int = 0
    processed_transactions: int = 0
    failed_transactions: int = 0
    duplicate_count: int = 0
    transaction_ids: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    categorization_summary: CategorizationSummary = Field(default_factory=CategorizationSummary)
    processing_started_at: Optional[datetime] = None
    processing_completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return UploadStatus(self.status).is_terminal
