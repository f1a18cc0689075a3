"""
Pydantic request/response schemas for the /api/v1/uploads and
/api/v1/reports endpoints.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel

from statement_ingest.pipeline.reports import CashFlowSummary, CategorySpending
from statement_ingest.schemas.records import UploadBatch


class UploadResponse(BaseModel):
    """Response after uploading a statement."""
    owner_id: str
    file_name: str
    file_size_bytes: int
    file_hash: str
    storage_path: str
    status: str
    upload_batch_id: Optional[str] = None
    job_id: Optional[str] = None
    message: str = "Statement uploaded successfully. Processing queued."


class UploadBatchListResponse(BaseModel):
    owner_id: str
    batches: list[UploadBatch]
    total: int


class SpendingReportResponse(BaseModel):
    owner_id: str
    start_date: date
    end_date: date
    categories: list[CategorySpending]


class CashFlowReportResponse(BaseModel):
    owner_id: str
    start_date: date
    end_date: date
    summary: CashFlowSummary
