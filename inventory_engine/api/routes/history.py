"""
Movement History API Endpoints
"""
from typing import Optional

from fastapi import APIRouter, Query, Request

from inventory_engine.core.rate_limit import limiter
from inventory_engine.db.session import DbSession
from inventory_engine.services.movement_history_service import MovementHistoryService

router = APIRouter()


@router.get("/")
@limiter.limit("60/minute")
def movement_history(
    request: Request,
    db: DbSession,
    item_id: Optional[int] = None,
    limit: int = Query(default=100, ge=1, le=500),
):
    """Placements, completed transfers and damage write-offs, newest first"""
    events = MovementHistoryService(db).history(item_id=item_id, limit=limit)
    return {"items": events, "total": len(events)}
