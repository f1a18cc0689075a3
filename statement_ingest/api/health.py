"""
Health check endpoint.
/health always returns 200; store connectivity is reported, not enforced.
"""

from fastapi import APIRouter, Depends

from statement_ingest.config import settings
from statement_ingest.dependencies import get_store
from statement_ingest.store.base import DocumentStore

router = APIRouter(tags=["health"])


async def _ping(store: DocumentStore) -> None:
    # Cheap read through the store interface
    await store.list_upload_batches("__health__")


@router.get("/health")
async def health_check(store: DocumentStore = Depends(get_store)):
    """
    Health check: verifies the API is running and the store answers.
    Always returns 200 even if the store is down.
    """
    store_ok = False
    store_error = None
    try:
        await _ping(store)
        store_ok = True
    except Exception as e:
        store_error = str(e)[:200]

    response = {
        "status": "healthy" if store_ok else "degraded",
        "version": settings.APP_VERSION,
        "pipeline_version": settings.PIPELINE_VERSION,
        "store_backend": settings.STORE_BACKEND,
        "store": "connected" if store_ok else "unreachable",
        "docai_fallback": settings.docai_configured,
    }
    if store_error:
        response["store_error"] = store_error

    return response


@router.get("/health/ready")
async def readiness_check(store: DocumentStore = Depends(get_store)):
    """Readiness check: ready only if the store answers."""
    try:
        await _ping(store)
        return {"ready": True}
    except Exception:
        return {"ready": False}
