"""API routes."""

from fastapi import APIRouter

from inventory_engine.api.routes import (
    batches,
    bins,
    damage_reports,
    history,
    integrity,
    placement_tasks,
    receiving,
    stock_counts,
    transfer_tasks,
)

api_router = APIRouter()

api_router.include_router(batches.router, prefix="/batches", tags=["batches"])
api_router.include_router(bins.router, prefix="/bins", tags=["bins"])
api_router.include_router(placement_tasks.router, prefix="/placement-tasks", tags=["placement-tasks"])
api_router.include_router(transfer_tasks.router, prefix="/transfer-tasks", tags=["transfer-tasks"])
api_router.include_router(damage_reports.router, prefix="/damage-reports", tags=["damage-reports"])
api_router.include_router(stock_counts.router, prefix="/stock-counts", tags=["stock-counts"])
api_router.include_router(receiving.router, prefix="/receiving", tags=["receiving"])
api_router.include_router(history.router, prefix="/history", tags=["history"])
api_router.include_router(integrity.router, prefix="/integrity", tags=["integrity"])
