"""
Stock Count API Endpoints
Physical counts, submission and review with stock adjustments on approval
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Request

from inventory_engine.core.context import EngineContext, get_engine_context
from inventory_engine.core.rate_limit import limiter
from inventory_engine.db.session import DbSession
from inventory_engine.models.stock_count import StockCountStatus, StockCountType
from inventory_engine.schemas.stock_count import (
    ApproveCountRequest,
    BulkRecordCountRequest,
    CreateStockCountRequest,
    RecordCountRequest,
    ReviewCountRequest,
    StockCountItemResponse,
    StockCountResponse,
    StockCountSummaryResponse,
)
from inventory_engine.services.stock_count_service import StockCountService

router = APIRouter()


@router.post("/", response_model=StockCountResponse, status_code=201)
@limiter.limit("30/minute")
def create_stock_count(
    request: Request,
    data: CreateStockCountRequest,
    db: DbSession,
    ctx: EngineContext = Depends(get_engine_context),
):
    return StockCountService(db).create_count(data, ctx)


@router.get("/", response_model=List[StockCountSummaryResponse])
@limiter.limit("60/minute")
def list_stock_counts(
    request: Request,
    db: DbSession,
    status: Optional[StockCountStatus] = None,
    assigned_to: Optional[int] = None,
    count_type: Optional[StockCountType] = None,
    location_id: Optional[int] = None,
):
    return StockCountService(db).list_counts(
        status=status, assigned_to=assigned_to, count_type=count_type, location_id=location_id
    )


@router.get("/available", response_model=List[StockCountSummaryResponse])
@limiter.limit("60/minute")
def available_stock_counts(request: Request, db: DbSession, day: Optional[date] = None):
    """Unassigned auto-generated counts due today"""
    return StockCountService(db).available_counts(day)


@router.get("/stats")
@limiter.limit("60/minute")
def stock_count_stats(request: Request, db: DbSession):
    return StockCountService(db).get_stats()


@router.get("/counters/{user_id}/stats")
@limiter.limit("60/minute")
def counter_stats(request: Request, user_id: int, db: DbSession):
    return StockCountService(db).get_counter_stats(user_id)


@router.get("/{count_id}", response_model=StockCountResponse)
@limiter.limit("60/minute")
def get_stock_count(request: Request, count_id: int, db: DbSession):
    return StockCountService(db).get_count(count_id)


@router.post("/{count_id}/start", response_model=StockCountResponse)
@limiter.limit("30/minute")
def start_stock_count(
    request: Request,
    count_id: int,
    db: DbSession,
    ctx: EngineContext = Depends(get_engine_context),
):
    return StockCountService(db).start_count(count_id, ctx)


@router.post("/{count_id}/claim", response_model=StockCountResponse)
@limiter.limit("30/minute")
def claim_stock_count(
    request: Request,
    count_id: int,
    db: DbSession,
    ctx: EngineContext = Depends(get_engine_context),
):
    return StockCountService(db).claim_count(count_id, ctx)


@router.put("/{count_id}/items/{line_id}", response_model=StockCountItemResponse)
@limiter.limit("300/minute")
def record_line_count(
    request: Request,
    count_id: int,
    line_id: int,
    data: RecordCountRequest,
    db: DbSession,
):
    return StockCountService(db).record_count(count_id, line_id, data.counted_quantity, data.notes)


@router.post("/{count_id}/items/bulk", response_model=StockCountResponse)
@limiter.limit("60/minute")
def record_line_counts(
    request: Request,
    count_id: int,
    data: BulkRecordCountRequest,
    db: DbSession,
):
    return StockCountService(db).record_counts(count_id, data.counts)


@router.delete("/{count_id}/items/{line_id}", response_model=StockCountResponse)
@limiter.limit("60/minute")
def remove_count_line(request: Request, count_id: int, line_id: int, db: DbSession):
    return StockCountService(db).remove_line(count_id, line_id)


@router.post("/{count_id}/submit", response_model=StockCountResponse)
@limiter.limit("30/minute")
def submit_stock_count(
    request: Request,
    count_id: int,
    db: DbSession,
    ctx: EngineContext = Depends(get_engine_context),
):
    return StockCountService(db).submit_count(count_id, ctx)


@router.post("/{count_id}/approve", response_model=StockCountResponse)
@limiter.limit("30/minute")
def approve_stock_count(
    request: Request,
    count_id: int,
    data: ApproveCountRequest,
    db: DbSession,
    ctx: EngineContext = Depends(get_engine_context),
):
    """Approve a submitted count and write every variance back into stock"""
    return StockCountService(db).approve_count(count_id, data, ctx)


@router.post("/{count_id}/reject", response_model=StockCountResponse)
@limiter.limit("30/minute")
def reject_stock_count(
    request: Request,
    count_id: int,
    data: ReviewCountRequest,
    db: DbSession,
    ctx: EngineContext = Depends(get_engine_context),
):
    return StockCountService(db).reject_count(count_id, ctx, data.review_notes)


@router.post("/{count_id}/recount", response_model=StockCountResponse)
@limiter.limit("30/minute")
def recount_stock_count(
    request: Request,
    count_id: int,
    data: ReviewCountRequest,
    db: DbSession,
    ctx: EngineContext = Depends(get_engine_context),
):
    return StockCountService(db).request_recount(count_id, ctx, data.review_notes)


@router.post("/{count_id}/complete", response_model=StockCountResponse)
@limiter.limit("30/minute")
def complete_stock_count(
    request: Request,
    count_id: int,
    db: DbSession,
    ctx: EngineContext = Depends(get_engine_context),
):
    return StockCountService(db).complete_count(count_id, ctx)
