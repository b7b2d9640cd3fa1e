"""
Transfer Task API Endpoints
Bin-to-bin stock moves driven step by step from handheld devices
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Request

from inventory_engine.core.context import EngineContext, get_engine_context
from inventory_engine.core.rate_limit import limiter
from inventory_engine.db.session import DbSession
from inventory_engine.models.tasks import TransferTaskStatus
from inventory_engine.schemas.tasks import (
    AdvanceStepRequest,
    CreateTransferTaskRequest,
    TransferTaskResponse,
)
from inventory_engine.services.transfer_task_service import TransferTaskService

router = APIRouter()


@router.post("/", response_model=TransferTaskResponse, status_code=201)
@limiter.limit("30/minute")
def create_transfer_task(request: Request, data: CreateTransferTaskRequest, db: DbSession):
    return TransferTaskService(db).create(data)


@router.post(
    "/from-transfer-order/{order_id}", response_model=List[TransferTaskResponse], status_code=201
)
@limiter.limit("30/minute")
def create_from_transfer_order(request: Request, order_id: int, db: DbSession):
    return TransferTaskService(db).create_from_transfer_order(order_id)


@router.get("/", response_model=List[TransferTaskResponse])
@limiter.limit("60/minute")
def list_transfer_tasks(
    request: Request,
    db: DbSession,
    status: Optional[TransferTaskStatus] = None,
    assigned_to: Optional[int] = None,
    transfer_order_id: Optional[int] = None,
):
    return TransferTaskService(db).list_tasks(
        status=status, assigned_to=assigned_to, transfer_order_id=transfer_order_id
    )


@router.get("/{task_id}", response_model=TransferTaskResponse)
@limiter.limit("60/minute")
def get_transfer_task(request: Request, task_id: int, db: DbSession):
    return TransferTaskService(db).get_task(task_id)


@router.post("/{task_id}/begin", response_model=TransferTaskResponse)
@limiter.limit("60/minute")
def begin_transfer(
    request: Request,
    task_id: int,
    db: DbSession,
    ctx: EngineContext = Depends(get_engine_context),
):
    return TransferTaskService(db).begin(task_id, ctx)


@router.post("/{task_id}/advance", response_model=TransferTaskResponse)
@limiter.limit("120/minute")
def advance_transfer(request: Request, task_id: int, data: AdvanceStepRequest, db: DbSession):
    return TransferTaskService(db).advance_step(task_id, data.step)


@router.post("/{task_id}/complete", response_model=TransferTaskResponse)
@limiter.limit("60/minute")
def complete_transfer(
    request: Request,
    task_id: int,
    db: DbSession,
    ctx: EngineContext = Depends(get_engine_context),
):
    """Move the stock from the source bin to the destination bin"""
    return TransferTaskService(db).complete(task_id, ctx)
