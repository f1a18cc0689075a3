"""
Top-level API router.
Combines all sub-routers into a single router.
"""

from fastapi import APIRouter

from statement_ingest.api.health import router as health_router
from statement_ingest.api.reports import router as reports_router
from statement_ingest.api.uploads import router as uploads_router

api_router = APIRouter()

api_router.include_router(health_router)
api_router.include_router(uploads_router)
api_router.include_router(reports_router)
