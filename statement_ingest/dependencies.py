"""
FastAPI dependency injection.
Provides the document store, artifact store, and API key validation.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

from statement_ingest.config import settings
from statement_ingest.storage.artifact_store import ArtifactStore
from statement_ingest.store.base import DocumentStore
from statement_ingest.store.factory import build_store


# ── Singleton instances ──────────────────────────────────────
_artifact_store: Optional[ArtifactStore] = None
_document_store: Optional[DocumentStore] = None


def get_artifact_store() -> ArtifactStore:
    """Get or create the artifact store singleton."""
    global _artifact_store
    if _artifact_store is None:
        _artifact_store = ArtifactStore()
    return _artifact_store


def get_store() -> DocumentStore:
    """Get or create the document store singleton for STORE_BACKEND."""
    global _document_store
    if _document_store is None:
        _document_store = build_store()
    return _document_store


async def close_store() -> None:
    global _document_store
    if _document_store is not None:
        await _document_store.close()
        _document_store = None


async def verify_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> Optional[str]:
    """
    Verify API key if configured.
    If API_KEY is not set, all requests are allowed (dev mode).
    """
    if settings.API_KEY is None:
        return None

    if x_api_key is None or x_api_key != settings.API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return x_api_key
