"""
Financial-exchange adapter (OFX / QFX) backed by ofxparse.
"""

import io
import time
from typing import Optional

import structlog
from ofxparse import OfxParser

from statement_ingest.adapters.base import FormatAdapter, coerce_row
from statement_ingest.config import settings
from statement_ingest.errors import MalformedInputError
from statement_ingest.models.enums import SourceFormat
from statement_ingest.observability.metrics import parse_duration_seconds
from statement_ingest.schemas.records import FinancialExchangeTransaction

logger = structlog.get_logger(__name__)


class FinancialExchangeAdapter(FormatAdapter):
    """Walks every account statement in the file and emits its transactions."""

    def __init__(self, confidence: Optional[float] = None):
        self.confidence = confidence if confidence is not None else settings.CONFIDENCE_FINANCIAL_EXCHANGE

    @property
    def source_format(self) -> SourceFormat:
        return SourceFormat.FINANCIAL_EXCHANGE

    @property
    def adapter_name(self) -> str:
        return "ofx"

    async def parse(self, file_bytes: bytes, file_name: str) -> list[FinancialExchangeTransaction]:
        start = time.monotonic()
        try:
            # fail_fast=False: entries ofxparse cannot read are discarded, not fatal
            ofx = OfxParser.parse(io.BytesIO(file_bytes), fail_fast=False)
        except Exception as e:
            raise MalformedInputError(f"OFX parsing error: {e}") from e

        transactions = []
        for account in ofx.accounts or []:
            statement = getattr(account, "statement", None)
            if statement is None:
                continue
            for txn in statement.transactions:
                description = (txn.payee or "").strip() or (txn.memo or "").strip()
                fields = coerce_row(txn.date, description, txn.amount)
                if fields is None:
                    logger.debug("ofx_entry_dropped", file_name=file_name, fitid=txn.id)
                    continue

                transactions.append(FinancialExchangeTransaction(
                    date=fields.date,
                    description=fields.description,
                    amount=fields.amount,
                    confidence=self.confidence,
                    external_id=txn.id or None,
                    raw_payload={
                        "fitid": txn.id,
                        "type": txn.type,
                        "payee": txn.payee,
                        "memo": txn.memo,
                        "amount": str(txn.amount) if txn.amount is not None else None,
                        "account_id": getattr(account, "account_id", None),
                    },
                ))

        parse_duration_seconds.labels(source_format=self.source_format.value).observe(
            time.monotonic() - start
        )
        logger.info("ofx_parsed", file_name=file_name, transactions=len(transactions))
        return transactions
