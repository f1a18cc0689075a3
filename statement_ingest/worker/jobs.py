"""
RQ job functions for statement ingestion.
These are the entry points that the worker calls.
"""

from typing import Optional

import structlog
from redis import Redis
from rq import Queue, get_current_job

from statement_ingest.config import settings
from statement_ingest.observability.logging import ingestion_context
from statement_ingest.storage.paths import owner_id_from_storage_path

logger = structlog.get_logger(__name__)


def get_queue() -> Queue:
    """Get the ingestion job queue."""
    conn = Redis.from_url(settings.REDIS_URL)
    return Queue(settings.QUEUE_NAME, connection=conn)


def enqueue_ingestion(
    storage_path: str,
    file_name: str,
    mime_type: Optional[str] = None,
    owner_id: Optional[str] = None,
    queue: Optional[Queue] = None,
) -> str:
    """
    Enqueue an uploaded statement for ingestion.
    The owner defaults to the one encoded in the storage path.
    Returns the job ID.
    """
    owner_id = owner_id or owner_id_from_storage_path(storage_path)
    if not owner_id:
        raise ValueError(f"Cannot determine owner for {storage_path}")

    q = queue or get_queue()
    job = q.enqueue(
        ingest_statement_job,
        storage_path,
        file_name,
        mime_type,
        owner_id,
        job_timeout=settings.JOB_TIMEOUT_SECONDS,
        result_ttl=86400,  # Keep results for 24 hours
        failure_ttl=604800,  # Keep failures for 7 days
    )
    logger.info("job_enqueued", storage_path=storage_path, owner_id=owner_id, job_id=job.id)
    return job.id


def ingest_statement_job(
    storage_path: str,
    file_name: str,
    mime_type: Optional[str],
    owner_id: str,
) -> dict:
    """
    Main job function: ingest one stored statement.
    This runs inside the RQ worker process. The worker refuses the memory
    store backend; called directly (tests, scripts) with that backend, each
    call starts from an empty store.
    """
    import asyncio

    job = get_current_job()
    with ingestion_context(owner_id=owner_id, storage_path=storage_path, job_id=job.id if job else None):
        logger.info("job_started")
        try:
            result = asyncio.run(_ingest_async(storage_path, file_name, mime_type, owner_id))
        except Exception as e:
            logger.error("job_failed", error=str(e))
            raise
        logger.info("job_completed", status=result.get("status"))
        return result


async def _ingest_async(
    storage_path: str,
    file_name: str,
    mime_type: Optional[str],
    owner_id: str,
) -> dict:
    """Load the bytes, run the pipeline and return a batch summary."""
    from statement_ingest.pipeline.orchestrator import IngestionPipeline
    from statement_ingest.storage.artifact_store import ArtifactStore
    from statement_ingest.store.factory import open_store

    file_bytes = ArtifactStore().load_bytes(storage_path)
    store = await open_store()
    try:
        batch = await IngestionPipeline(store).ingest(file_bytes, file_name, mime_type, owner_id)
    finally:
        await store.close()

    return {
        "upload_batch_id": batch.id,
        "status": batch.status.value,
        "total_transactions": batch.total_transactions,
        "processed_transactions": batch.processed_transactions,
        "failed_transactions": batch.failed_transactions,
        "duplicate_count": batch.duplicate_count,
    }
