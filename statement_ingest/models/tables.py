"""
SQLAlchemy ORM models.
Column names match the pydantic record fields in schemas/records.py.
"""

from datetime import datetime, date
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from statement_ingest.models.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")
Confidence = Numeric(5, 4, asdecimal=False)


# ────────────────────────────────────────────────────────────
# ACCOUNTS
# ────────────────────────────────────────────────────────────
class AccountRow(Base):
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    institution_name_guess: Mapped[str] = mapped_column(Text, nullable=False)
    account_type_guess: Mapped[str] = mapped_column(String(20), nullable=False, default="checking")
    transaction_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_transaction_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    last_upload_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    default_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_accounts_owner", "owner_id"),
    )


# ────────────────────────────────────────────────────────────
# CATEGORY RULES
# ────────────────────────────────────────────────────────────
class CategoryRuleRow(Base):
    __tablename__ = "category_rules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    keywords: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    patterns: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    merchant_rules: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))
    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Insertion sequence per owner; breaks sort_order ties
    seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_tax_deductible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_category_rules_owner_order", "owner_id", "sort_order", "seq"),
    )


# ────────────────────────────────────────────────────────────
# TRANSACTIONS
# ────────────────────────────────────────────────────────────
class TransactionRow(Base):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    account_id: Mapped[str] = mapped_column(String(36), nullable=False)
    upload_batch_id: Mapped[str] = mapped_column(String(36), nullable=False)
    # column is "date"
    txn_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    kind: Mapped[str] = mapped_column(String(10), nullable=False)
    description_raw: Mapped[str] = mapped_column(Text, nullable=False)
    description_cleaned: Mapped[str] = mapped_column(Text, nullable=False)
    merchant_name_guess: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    category_confidence: Mapped[Optional[float]] = mapped_column(Confidence, nullable=True)
    is_duplicate_of: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    parser_confidence: Mapped[float] = mapped_column(Confidence, nullable=False)
    source_format: Mapped[str] = mapped_column(String(32), nullable=False)
    external_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    raw_payload: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    __table_args__ = (
        Index("idx_transactions_owner_date", "owner_id", "date"),
        Index("idx_transactions_batch", "upload_batch_id"),
        Index("idx_transactions_category", "category_id"),
    )


# ────────────────────────────────────────────────────────────
# UPLOAD BATCHES
# ────────────────────────────────────────────────────────────
class UploadBatchRow(Base):
    __tablename__ = "upload_batches"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    file_type: Mapped[str] = mapped_column(Text, nullable=False, default="unknown")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="uploaded")
    account_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    total_transactions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processed_transactions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_transactions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duplicate_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    transaction_ids: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    errors: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    warnings: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    categorization_summary: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    processing_started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    processing_completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_upload_batches_owner", "owner_id", "created_at"),
        Index("idx_upload_batches_status", "status"),
    )
