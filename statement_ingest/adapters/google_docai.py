"""
Google Document AI client for the document-understanding fallback.

google-cloud-documentai is an optional extra; it is imported only when the
fallback is enabled and configured.
"""

from typing import Optional

import structlog

from statement_ingest.config import Settings, settings as default_settings
from statement_ingest.schemas.records import ExtractedEntity

logger = structlog.get_logger(__name__)


def _to_entity(entity) -> ExtractedEntity:
    normalized = getattr(entity, "normalized_value", None)
    normalized_text = getattr(normalized, "text", None) if normalized is not None else None
    return ExtractedEntity(
        id=entity.id or None,
        type=entity.type_,
        mention_text=entity.mention_text or "",
        normalized_value=normalized_text or None,
        confidence=entity.confidence or None,
        properties=[_to_entity(p) for p in entity.properties],
    )


class GoogleDocumentAIClient:
    """Calls a Document AI processor and flattens its entities."""

    client_name = "google_docai"

    def __init__(self, project_id: str, location: str, processor_id: str):
        from google.cloud import documentai

        self._documentai = documentai
        self._client = documentai.DocumentProcessorServiceAsyncClient(
            client_options={"api_endpoint": f"{location}-documentai.googleapis.com"}
        )
        self.processor_name = self._client.processor_path(project_id, location, processor_id)

    async def extract_entities(self, file_bytes: bytes, mime_type: str) -> list[ExtractedEntity]:
        request = self._documentai.ProcessRequest(
            name=self.processor_name,
            raw_document=self._documentai.RawDocument(content=file_bytes, mime_type=mime_type),
        )
        result = await self._client.process_document(request=request)
        entities = [_to_entity(e) for e in result.document.entities]
        logger.info("docai_processed", processor=self.processor_name, entities=len(entities))
        return entities


def build_document_client(config: Optional[Settings] = None) -> Optional[GoogleDocumentAIClient]:
    """
    Build the fallback client, or None when the feature flag is off or the
    project/processor IDs are missing.
    """
    config = config or default_settings
    if not config.docai_configured:
        return None
    return GoogleDocumentAIClient(
        project_id=config.DOCAI_PROJECT_ID,
        location=config.DOCAI_LOCATION,
        processor_id=config.DOCAI_PROCESSOR_ID,
    )
