"""
Abstract base class for all statement format adapters.
Every adapter must produce a list of ParsedTransaction.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Any, NamedTuple, Optional

import structlog

from statement_ingest.config import settings
from statement_ingest.models.enums import SourceFormat
from statement_ingest.pipeline.amount_parser import parse_amount
from statement_ingest.pipeline.date_parser import parse_statement_date
from statement_ingest.schemas.records import ParsedTransaction

logger = structlog.get_logger(__name__)

DEBIT_TYPE_HINTS = ("debit", "dr", "withdrawal")


class RowFields(NamedTuple):
    date: date
    description: str
    amount: Decimal


class FormatAdapter(ABC):
    """
    Abstract base class for all format adapters.

    Every adapter must:
    1. Accept the raw file bytes and the uploaded file name
    2. Return ParsedTransaction records of its own source_format
    3. Drop rows it cannot read, without failing the file
    4. Raise MalformedInputError when the bytes are unreadable as a whole
    """

    @property
    @abstractmethod
    def source_format(self) -> SourceFormat:
        ...

    @property
    @abstractmethod
    def adapter_name(self) -> str:
        """Unique identifier: 'csv', 'ofx', 'spreadsheet', 'google_docai'"""
        ...

    @abstractmethod
    async def parse(self, file_bytes: bytes, file_name: str) -> list[ParsedTransaction]:
        ...


def coerce_row(
    raw_date: Any,
    raw_description: Any,
    raw_amount: Any,
    raw_type: Any = None,
    dayfirst: Optional[bool] = None,
) -> Optional[RowFields]:
    """
    Validate one raw row. Returns None when the date, description or amount
    is missing or unparseable; the caller drops the row.

    A type column saying debit/dr/withdrawal turns a positive amount negative.
    """
    if dayfirst is None:
        dayfirst = settings.DATE_DAYFIRST

    parsed_date = parse_statement_date(raw_date, dayfirst=dayfirst).parsed_date
    if parsed_date is None:
        return None

    description = str(raw_description).strip() if raw_description is not None else ""
    if not description:
        return None

    amount = parse_amount(raw_amount).amount
    if amount is None:
        return None

    if raw_type is not None and amount > 0:
        if str(raw_type).strip().lower() in DEBIT_TYPE_HINTS:
            amount = -amount

    return RowFields(parsed_date, description, amount)


def split_amount(raw_debit: Any, raw_credit: Any) -> Optional[Decimal]:
    """
    Signed amount for exports with separate Debit and Credit columns:
    credit minus debit, so money out is negative. None when neither side
    holds a parseable amount.
    """
    debit = parse_amount(raw_debit).amount
    credit = parse_amount(raw_credit).amount
    if debit is None and credit is None:
        return None
    return abs(credit or Decimal("0")) - abs(debit or Decimal("0"))


def decode_text(file_bytes: bytes) -> str:
    """UTF-8 with BOM tolerance, latin-1 as the last resort."""
    try:
        return file_bytes.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.debug("decode_fallback_latin1")
        return file_bytes.decode("latin-1")
