"""
FastAPI application factory.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from statement_ingest.config import settings
from statement_ingest.api.router import api_router
from statement_ingest.dependencies import close_store, get_store
from statement_ingest.observability.logging import setup_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    # Startup
    setup_logging(role="api")

    # Sentry init if configured
    if settings.SENTRY_DSN:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            integrations=[FastApiIntegration()],
            traces_sample_rate=0.1,
        )

    store = app.dependency_overrides.get(get_store, get_store)()
    create_schema = getattr(store, "create_schema", None)
    if create_schema is not None and settings.DB_AUTO_CREATE:
        try:
            await create_schema()
        except Exception as e:
            logger.error("schema_create_failed", error=str(e))

    logger.info(
        "app_started",
        version=settings.APP_VERSION,
        store_backend=settings.STORE_BACKEND,
        process_inline=settings.PROCESS_INLINE,
        docai_fallback=settings.docai_configured,
    )

    yield

    # Shutdown
    await close_store()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Statement Ingestion Service",
        description="Ingests bank and card statements into categorized, de-duplicated transactions.",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Prometheus metrics endpoint
    if settings.PROMETHEUS_ENABLED:
        from prometheus_client import make_asgi_app
        metrics_app = make_asgi_app()
        app.mount("/metrics", metrics_app)

    # Include all API routes
    app.include_router(api_router)

    return app


# Application instance
app = create_app()
