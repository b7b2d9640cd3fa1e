"""
Batch Ledger API Endpoints
Create batches, deduct stock FIFO and inspect the deduction audit trail
"""
from typing import List

from fastapi import APIRouter, Request

from inventory_engine.core.rate_limit import limiter
from inventory_engine.db.session import DbSession
from inventory_engine.db.transaction import with_conflict_retry
from inventory_engine.schemas.batch import (
    BatchDeductionResponse,
    BatchResponse,
    CreateBatchRequest,
    DeductRequest,
    DeductionResultResponse,
)
from inventory_engine.services.batch_ledger_service import BatchLedgerService

router = APIRouter()


@router.post("/", response_model=BatchResponse, status_code=201)
@limiter.limit("30/minute")
def create_batch(request: Request, data: CreateBatchRequest, db: DbSession):
    """Create a batch for an item (manual receipt)."""
    return BatchLedgerService(db).create_batch(data)


@router.post("/deduct", response_model=DeductionResultResponse)
@limiter.limit("120/minute")
def deduct_stock(request: Request, data: DeductRequest, db: DbSession):
    """Deduct stock oldest-batch-first. Retried on lock conflicts."""
    service = BatchLedgerService(db)
    result = with_conflict_retry(lambda: service.deduct(data))
    return result.to_dict()


@router.get("/items/{item_id}", response_model=List[BatchResponse])
@limiter.limit("60/minute")
def list_item_batches(request: Request, item_id: int, db: DbSession, include_empty: bool = False):
    """Batches for an item, oldest first"""
    return BatchLedgerService(db).get_batches_for_item(item_id, include_empty=include_empty)


@router.get("/{batch_id}/deductions", response_model=List[BatchDeductionResponse])
@limiter.limit("60/minute")
def list_batch_deductions(request: Request, batch_id: int, db: DbSession):
    """Deductions taken from a batch, newest first"""
    return BatchLedgerService(db).get_batch_deductions(batch_id)
