"""
Receiving API Endpoints
"""
from fastapi import APIRouter, Request

from inventory_engine.core.rate_limit import limiter
from inventory_engine.db.session import DbSession
from inventory_engine.services.receiving_service import ReceivingService

router = APIRouter()


@router.post("/receipts/{receipt_id}", status_code=201)
@limiter.limit("30/minute")
def receive_receipt(request: Request, receipt_id: int, db: DbSession):
    """Create batches and placement tasks for a completed receipt"""
    return ReceivingService(db).receive_receipt(receipt_id)
