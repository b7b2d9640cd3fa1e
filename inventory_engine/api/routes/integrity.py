"""
Stock Integrity API Endpoints
"""
from fastapi import APIRouter, Request

from inventory_engine.core.rate_limit import limiter
from inventory_engine.db.session import DbSession
from inventory_engine.services.stock_integrity_service import StockIntegrityService

router = APIRouter()


@router.get("/items/{item_id}")
@limiter.limit("60/minute")
def check_item(request: Request, item_id: int, db: DbSession):
    """Compare book stock with batch and bin totals for an item"""
    return StockIntegrityService(db).check_item(item_id)
