"""
Python enums shared by the pydantic records and the ORM tables.
Values are what gets stored; keep them stable.
"""

from enum import Enum


class SourceFormat(str, Enum):
    DELIMITED_TEXT = "delimited_text"
    FINANCIAL_EXCHANGE = "financial_exchange"
    SPREADSHEET = "spreadsheet"
    DOCUMENT_UNDERSTANDING = "document_understanding"


class TransactionKind(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class AccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT = "credit"
    LOAN = "loan"
    INVESTMENT = "investment"


class UploadStatus(str, Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadStatus.COMPLETED, UploadStatus.FAILED)


class RecordOutcome(str, Enum):
    """Per-record result inside one ingestion run."""
    SAVED = "saved"
    DUPLICATE = "duplicate"
    FAILED = "failed"
