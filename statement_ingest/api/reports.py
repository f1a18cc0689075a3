"""
/api/v1/reports endpoints.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status

from statement_ingest.dependencies import get_store, verify_api_key
from statement_ingest.pipeline.reports import cash_flow_summary, spending_by_category
from statement_ingest.schemas.uploads import CashFlowReportResponse, SpendingReportResponse
from statement_ingest.store.base import DocumentStore

router = APIRouter(prefix="/api/v1/reports", tags=["reports"], dependencies=[Depends(verify_api_key)])


def _check_range(start_date: date, end_date: date) -> None:
    if start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must not be after end_date",
        )


@router.get("/spending", response_model=SpendingReportResponse)
async def spending_report(
    owner_id: str = Query(..., min_length=1),
    start_date: date = Query(...),
    end_date: date = Query(...),
    store: DocumentStore = Depends(get_store),
):
    _check_range(start_date, end_date)
    categories = await spending_by_category(store, owner_id, start_date, end_date)
    return SpendingReportResponse(
        owner_id=owner_id, start_date=start_date, end_date=end_date, categories=categories
    )


@router.get("/cash-flow", response_model=CashFlowReportResponse)
async def cash_flow_report(
    owner_id: str = Query(..., min_length=1),
    start_date: date = Query(...),
    end_date: date = Query(...),
    store: DocumentStore = Depends(get_store),
):
    _check_range(start_date, end_date)
    summary = await cash_flow_summary(store, owner_id, start_date, end_date)
    return CashFlowReportResponse(
        owner_id=owner_id, start_date=start_date, end_date=end_date, summary=summary
    )
