"""
Document-understanding fallback adapter.

Used for extensions no structured adapter claims. The adapter depends only on
the DocumentUnderstandingClient protocol; the Google Document AI client lives
in google_docai.py and is built lazily from settings.
"""

import time
from typing import Optional, Protocol, runtime_checkable

import structlog

from statement_ingest.adapters.base import FormatAdapter, coerce_row
from statement_ingest.config import settings
from statement_ingest.errors import MalformedInputError
from statement_ingest.models.enums import SourceFormat
from statement_ingest.observability.metrics import parse_duration_seconds
from statement_ingest.schemas.records import DocumentUnderstandingTransaction, ExtractedEntity

logger = structlog.get_logger(__name__)

TRANSACTION_ENTITY = "transaction"


@runtime_checkable
class DocumentUnderstandingClient(Protocol):
    async def extract_entities(self, file_bytes: bytes, mime_type: str) -> list[ExtractedEntity]:
        ...


class DocumentUnderstandingAdapter(FormatAdapter):
    """Turns 'transaction' entities into parsed transactions."""

    def __init__(self, client: DocumentUnderstandingClient, default_confidence: Optional[float] = None):
        self.client = client
        self.default_confidence = (
            default_confidence if default_confidence is not None
            else settings.CONFIDENCE_DOCUMENT_DEFAULT
        )

    @property
    def source_format(self) -> SourceFormat:
        return SourceFormat.DOCUMENT_UNDERSTANDING

    @property
    def adapter_name(self) -> str:
        return getattr(self.client, "client_name", type(self.client).__name__)

    async def parse(
        self,
        file_bytes: bytes,
        file_name: str,
        mime_type: str = "application/pdf",
    ) -> list[DocumentUnderstandingTransaction]:
        start = time.monotonic()
        try:
            entities = await self.client.extract_entities(file_bytes, mime_type)
        except MalformedInputError:
            raise
        except Exception as e:
            raise MalformedInputError(f"Document processing error: {e}") from e

        transactions = []
        for entity in entities:
            if entity.type != TRANSACTION_ENTITY:
                continue
            fields = coerce_row(
                entity.property_text("date"),
                entity.property_text("description"),
                entity.property_text("amount"),
            )
            if fields is None:
                logger.debug("docai_entity_dropped", file_name=file_name, entity_id=entity.id)
                continue

            confidence = entity.confidence if entity.confidence else self.default_confidence
            transactions.append(DocumentUnderstandingTransaction(
                date=fields.date,
                description=fields.description,
                amount=fields.amount,
                confidence=confidence,
                entity_type=entity.type,
                raw_payload=entity.model_dump(mode="json"),
            ))

        parse_duration_seconds.labels(source_format=self.source_format.value).observe(
            time.monotonic() - start
        )
        logger.info(
            "docai_parsed",
            file_name=file_name,
            entities=len(entities),
            transactions=len(transactions),
        )
        return transactions
