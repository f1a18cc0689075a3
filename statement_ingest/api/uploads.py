"""
/api/v1/uploads endpoints.
Handles statement upload and upload-batch status.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from statement_ingest.config import settings
from statement_ingest.dependencies import get_artifact_store, get_store, verify_api_key
from statement_ingest.pipeline.format_parser import SUPPORTED_EXTENSIONS, file_extension
from statement_ingest.schemas.records import UploadBatch
from statement_ingest.schemas.uploads import UploadBatchListResponse, UploadResponse
from statement_ingest.storage.artifact_store import ArtifactStore
from statement_ingest.storage.paths import file_hash, statement_upload_path
from statement_ingest.store.base import DocumentStore

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/uploads", tags=["uploads"], dependencies=[Depends(verify_api_key)])


@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_statement(
    owner_id: str = Query(..., min_length=1),
    file: UploadFile = File(...),
    store: DocumentStore = Depends(get_store),
    artifacts: ArtifactStore = Depends(get_artifact_store),
):
    """Upload a statement file for ingestion."""
    file_name = file.filename or "statement"

    if settings.REJECT_UNSUPPORTED_UPLOADS and not settings.docai_configured:
        if file_extension(file_name) not in SUPPORTED_EXTENSIONS:
            raise HTTPException(
                status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                detail=f"Unsupported file format: {file_name}. Allowed: {sorted(SUPPORTED_EXTENSIONS)}",
            )

    # Read file
    file_bytes = await file.read()
    file_size = len(file_bytes)

    # Validate size
    max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if file_size > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large: {file_size} bytes. Max: {max_bytes} bytes",
        )

    # Validate not empty
    if file_size == 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Empty file uploaded",
        )

    storage_path = statement_upload_path(owner_id, file_name)
    artifacts.save_bytes(storage_path, file_bytes)
    digest = file_hash(file_bytes)

    logger.info(
        "statement_uploaded",
        owner_id=owner_id,
        file_name=file_name,
        file_size_bytes=file_size,
        file_hash=digest,
    )

    response = UploadResponse(
        owner_id=owner_id,
        file_name=file_name,
        file_size_bytes=file_size,
        file_hash=digest,
        storage_path=storage_path,
        status="stored",
    )

    if settings.PROCESS_INLINE:
        from statement_ingest.pipeline.orchestrator import IngestionPipeline

        batch = await IngestionPipeline(store).ingest(file_bytes, file_name, file.content_type, owner_id)
        response.status = batch.status.value
        response.upload_batch_id = batch.id
        response.message = "Statement processed."
        return response

    # Enqueue for background processing
    try:
        from statement_ingest.worker.jobs import enqueue_ingestion
        response.job_id = enqueue_ingestion(storage_path, file_name, file.content_type, owner_id)
        response.status = "queued"
    except Exception as enqueue_err:
        # Redis unavailable; the file is stored and can be re-enqueued
        logger.warning("enqueue_failed", storage_path=storage_path, error=str(enqueue_err))
        response.message = "Statement stored. Queueing failed; retry later."

    return response


@router.get("", response_model=UploadBatchListResponse)
async def list_upload_batches(
    owner_id: str = Query(..., min_length=1),
    limit: int = Query(50, ge=1, le=200),
    store: DocumentStore = Depends(get_store),
):
    """Upload batches for one owner, newest first."""
    batches = await store.list_upload_batches(owner_id)
    return UploadBatchListResponse(owner_id=owner_id, batches=batches[:limit], total=len(batches))


@router.get("/{batch_id}", response_model=UploadBatch)
async def get_upload_batch(
    batch_id: str,
    store: DocumentStore = Depends(get_store),
):
    """Single upload batch with its counters, errors and warnings."""
    batch: Optional[UploadBatch] = await store.get_upload_batch(batch_id)
    if batch is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Upload batch {batch_id} not found",
        )
    return batch
