"""
RQ worker for queued statement ingestion.
Run with: python -m statement_ingest.worker.runner
"""

import os
import socket
from typing import Optional

import structlog
from redis import Redis
from rq import Queue, Worker

from statement_ingest.config import settings
from statement_ingest.observability.logging import setup_logging

logger = structlog.get_logger(__name__)


def check_worker_store(backend: Optional[str] = None) -> str:
    """
    Refuse store backends that cannot be shared between jobs. Each job opens
    its own store, so with the memory backend every file would be checked
    for duplicates and matched to accounts against an empty store.
    """
    backend = (backend or settings.STORE_BACKEND).lower()
    if backend == "memory":
        raise RuntimeError(
            "STORE_BACKEND=memory cannot back the ingestion worker; "
            "use STORE_BACKEND=sql so jobs share transaction history"
        )
    return backend


def main():
    """Start the RQ worker on the ingestion queue."""
    backend = check_worker_store()
    setup_logging(role="worker")

    conn = Redis.from_url(settings.REDIS_URL)
    worker = Worker(
        queues=[Queue(settings.QUEUE_NAME, connection=conn)],
        connection=conn,
        name=f"statement-ingest-{socket.gethostname()}-{os.getpid()}",
    )

    logger.info("worker_starting", queue=settings.QUEUE_NAME, store_backend=backend, worker=worker.name)
    worker.work(with_scheduler=False, logging_level=settings.LOG_LEVEL.upper())


if __name__ == "__main__":
    main()
