"""
Damage Report API Endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Request

from inventory_engine.core.context import EngineContext, get_engine_context
from inventory_engine.core.rate_limit import limiter
from inventory_engine.db.session import DbSession
from inventory_engine.models.damage_report import DamageReportStatus
from inventory_engine.schemas.damage_report import (
    CreateDamageReportRequest,
    DamageReportResponse,
    ReviewDamageReportRequest,
)
from inventory_engine.services.damage_report_service import DamageReportService

router = APIRouter()


@router.post("/", response_model=DamageReportResponse, status_code=201)
@limiter.limit("30/minute")
def create_damage_report(
    request: Request,
    data: CreateDamageReportRequest,
    db: DbSession,
    ctx: EngineContext = Depends(get_engine_context),
):
    return DamageReportService(db).create(data, ctx)


@router.get("/", response_model=List[DamageReportResponse])
@limiter.limit("60/minute")
def list_damage_reports(
    request: Request,
    db: DbSession,
    status: Optional[DamageReportStatus] = None,
    item_id: Optional[int] = None,
    stock_count_id: Optional[int] = None,
):
    return DamageReportService(db).list_reports(
        status=status, item_id=item_id, stock_count_id=stock_count_id
    )


@router.get("/pending-count")
@limiter.limit("60/minute")
def pending_damage_reports(request: Request, db: DbSession):
    return {"pending": DamageReportService(db).pending_count()}


@router.get("/{report_id}", response_model=DamageReportResponse)
@limiter.limit("60/minute")
def get_damage_report(request: Request, report_id: int, db: DbSession):
    return DamageReportService(db).get_report(report_id)


@router.post("/{report_id}/approve", response_model=DamageReportResponse)
@limiter.limit("30/minute")
def approve_damage_report(
    request: Request,
    report_id: int,
    data: ReviewDamageReportRequest,
    db: DbSession,
    ctx: EngineContext = Depends(get_engine_context),
):
    """Approve and write the damaged stock off. Repeat approvals are no-ops."""
    return DamageReportService(db).approve(report_id, ctx, data.notes)


@router.post("/{report_id}/reject", response_model=DamageReportResponse)
@limiter.limit("30/minute")
def reject_damage_report(
    request: Request,
    report_id: int,
    data: ReviewDamageReportRequest,
    db: DbSession,
    ctx: EngineContext = Depends(get_engine_context),
):
    return DamageReportService(db).reject(report_id, ctx, data.notes)


@router.delete("/{report_id}/photo", response_model=DamageReportResponse)
@limiter.limit("30/minute")
def clear_damage_photo(request: Request, report_id: int, db: DbSession):
    return DamageReportService(db).clear_photo(report_id)
