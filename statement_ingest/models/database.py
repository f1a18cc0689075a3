"""
Async SQLAlchemy engine and session factory.
Nothing connects at import time; the engine is built on first use.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from statement_ingest.config import settings


class Base(DeclarativeBase):
    pass


def create_engine_from_settings(database_url: Optional[str] = None) -> AsyncEngine:
    url = database_url or settings.DATABASE_URL
    kwargs = {"echo": settings.DB_ECHO}
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
        )
    return create_async_engine(url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


_engine: Optional[AsyncEngine] = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_engine_from_settings()
    return _engine


async def close_db() -> None:
    """Dispose the shared engine (app shutdown)."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
