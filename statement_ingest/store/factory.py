"""
Store construction from settings.
"""

from typing import Optional

import structlog

from statement_ingest.config import settings
from statement_ingest.store.base import DocumentStore
from statement_ingest.store.memory_store import InMemoryDocumentStore

logger = structlog.get_logger(__name__)

STORE_BACKENDS = ("sql", "memory")


def build_store(backend: Optional[str] = None, database_url: Optional[str] = None) -> DocumentStore:
    backend = (backend or settings.STORE_BACKEND).lower()
    if backend == "memory":
        return InMemoryDocumentStore()
    if backend == "sql":
        from statement_ingest.store.sql_store import SqlDocumentStore
        return SqlDocumentStore(database_url=database_url)
    raise ValueError(f"Unknown STORE_BACKEND {backend!r}; expected one of {STORE_BACKENDS}")


async def open_store(backend: Optional[str] = None, database_url: Optional[str] = None) -> DocumentStore:
    """Build the store and create the SQL schema when DB_AUTO_CREATE is set."""
    store = build_store(backend, database_url)
    create_schema = getattr(store, "create_schema", None)
    if create_schema is not None and settings.DB_AUTO_CREATE:
        await create_schema()
    logger.info("store_opened", backend=type(store).__name__)
    return store
