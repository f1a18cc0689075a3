"""
Format dispatch: picks an adapter by file extension and runs it.
"""

from pathlib import PurePosixPath
from typing import Optional

import structlog

from statement_ingest.adapters.base import FormatAdapter
from statement_ingest.adapters.delimited import DelimitedTextAdapter
from statement_ingest.adapters.document_ai import (
    DocumentUnderstandingAdapter,
    DocumentUnderstandingClient,
)
from statement_ingest.adapters.ofx import FinancialExchangeAdapter
from statement_ingest.adapters.spreadsheet import SpreadsheetAdapter
from statement_ingest.errors import MalformedInputError, UnsupportedFormatError
from statement_ingest.observability.metrics import parsed_transactions_total
from statement_ingest.schemas.records import ParsedTransaction

logger = structlog.get_logger(__name__)

DELIMITED_EXTENSIONS = {".csv", ".txt"}
FINANCIAL_EXCHANGE_EXTENSIONS = {".ofx", ".qfx"}
SPREADSHEET_EXTENSIONS = {".xls", ".xlsx"}
SUPPORTED_EXTENSIONS = DELIMITED_EXTENSIONS | FINANCIAL_EXCHANGE_EXTENSIONS | SPREADSHEET_EXTENSIONS


def file_extension(file_name: str) -> str:
    return PurePosixPath(file_name or "").suffix.lower()


class FormatParser:
    """
    Routes a file to its adapter:
    .csv/.txt -> delimited text, .ofx/.qfx -> financial exchange,
    .xls/.xlsx -> spreadsheet, anything else -> document understanding
    if a client is configured.
    """

    def __init__(
        self,
        document_client: Optional[DocumentUnderstandingClient] = None,
        delimited: Optional[FormatAdapter] = None,
        financial_exchange: Optional[FormatAdapter] = None,
        spreadsheet: Optional[FormatAdapter] = None,
    ):
        self.delimited = delimited or DelimitedTextAdapter()
        self.financial_exchange = financial_exchange or FinancialExchangeAdapter()
        self.spreadsheet = spreadsheet or SpreadsheetAdapter()
        self.document = DocumentUnderstandingAdapter(document_client) if document_client else None

    @property
    def has_fallback(self) -> bool:
        return self.document is not None

    def supports(self, file_name: str) -> bool:
        return file_extension(file_name) in SUPPORTED_EXTENSIONS or self.has_fallback

    async def parse(
        self,
        file_bytes: bytes,
        file_name: str,
        declared_mime_type: Optional[str] = None,
    ) -> list[ParsedTransaction]:
        ext = file_extension(file_name)

        if ext in DELIMITED_EXTENSIONS:
            adapter = self.delimited
            transactions = await adapter.parse(file_bytes, file_name)
        elif ext in FINANCIAL_EXCHANGE_EXTENSIONS:
            adapter = self.financial_exchange
            transactions = await adapter.parse(file_bytes, file_name)
        elif ext in SPREADSHEET_EXTENSIONS:
            adapter = self.spreadsheet
            transactions = await adapter.parse(file_bytes, file_name)
        elif self.document is not None:
            adapter = self.document
            transactions = await self.document.parse(
                file_bytes, file_name, mime_type=declared_mime_type or "application/pdf"
            )
        else:
            raise UnsupportedFormatError(f"Unsupported file format: {ext or file_name}")

        if not transactions:
            raise MalformedInputError(f"No valid transactions found in {file_name}")

        parsed_transactions_total.labels(
            source_format=adapter.source_format.value
        ).inc(len(transactions))
        logger.info(
            "format_parsed",
            file_name=file_name,
            adapter=adapter.adapter_name,
            transactions=len(transactions),
        )
        return transactions
