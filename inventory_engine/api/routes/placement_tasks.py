"""
Placement Task API Endpoints
Put received goods away into bins
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Request

from inventory_engine.core.context import EngineContext, get_engine_context
from inventory_engine.core.rate_limit import limiter
from inventory_engine.db.session import DbSession
from inventory_engine.models.tasks import PlacementTaskStatus
from inventory_engine.schemas.tasks import (
    CreatePlacementTaskRequest,
    PlaceItemRequest,
    PlacementTaskResponse,
)
from inventory_engine.services.placement_task_service import PlacementTaskService

router = APIRouter()


@router.post("/", response_model=PlacementTaskResponse, status_code=201)
@limiter.limit("30/minute")
def create_placement_task(request: Request, data: CreatePlacementTaskRequest, db: DbSession):
    return PlacementTaskService(db).create(data)


@router.post("/from-receipt/{receipt_id}", response_model=List[PlacementTaskResponse], status_code=201)
@limiter.limit("30/minute")
def create_from_receipt(request: Request, receipt_id: int, db: DbSession):
    """One placement task per receipt line"""
    return PlacementTaskService(db).create_from_receipt(receipt_id)


@router.get("/", response_model=List[PlacementTaskResponse])
@limiter.limit("60/minute")
def list_placement_tasks(
    request: Request,
    db: DbSession,
    status: Optional[PlacementTaskStatus] = None,
    receipt_id: Optional[int] = None,
):
    return PlacementTaskService(db).list_tasks(status=status, receipt_id=receipt_id)


@router.get("/{task_id}", response_model=PlacementTaskResponse)
@limiter.limit("60/minute")
def get_placement_task(request: Request, task_id: int, db: DbSession):
    return PlacementTaskService(db).get_task(task_id)


@router.post("/{task_id}/place", response_model=PlacementTaskResponse)
@limiter.limit("60/minute")
def place_item(
    request: Request,
    task_id: int,
    data: PlaceItemRequest,
    db: DbSession,
    ctx: EngineContext = Depends(get_engine_context),
):
    """Place the task's goods in a bin and allocate them there"""
    return PlacementTaskService(db).place_item(task_id, data.bin_id, ctx)
