"""
Bin Allocation API Endpoints
"""
from typing import List

from fastapi import APIRouter, Request

from inventory_engine.core.rate_limit import limiter
from inventory_engine.db.session import DbSession
from inventory_engine.models.bin_allocation import BinAllocation
from inventory_engine.schemas.bin import AllocateRequest, BinAllocationResponse, DeallocateRequest
from inventory_engine.services.bin_allocation_service import BinAllocationService

router = APIRouter()


def _format_allocation(allocation: BinAllocation) -> dict:
    return {
        "item_id": allocation.item_id,
        "bin_id": allocation.bin_id,
        "bin_code": allocation.bin.bin_code if allocation.bin else None,
        "quantity": allocation.quantity,
        "serial_numbers": list(allocation.serial_numbers or []),
    }


@router.post("/allocate", response_model=BinAllocationResponse)
@limiter.limit("60/minute")
def allocate(request: Request, data: AllocateRequest, db: DbSession):
    allocation = BinAllocationService(db).allocate(
        data.item_id, data.bin_id, data.quantity, data.serial_numbers
    )
    return _format_allocation(allocation)


@router.post("/deallocate", response_model=BinAllocationResponse)
@limiter.limit("60/minute")
def deallocate(request: Request, data: DeallocateRequest, db: DbSession):
    allocation = BinAllocationService(db).deallocate(
        data.item_id, data.bin_id, data.quantity, data.serial_numbers
    )
    return _format_allocation(allocation)


@router.get("/items/{item_id}", response_model=List[BinAllocationResponse])
@limiter.limit("60/minute")
def item_locations(request: Request, item_id: int, db: DbSession):
    """Bins holding an item, largest quantity first"""
    return BinAllocationService(db).query(item_id)


@router.get("/{bin_id}/contents", response_model=List[BinAllocationResponse])
@limiter.limit("60/minute")
def bin_contents(request: Request, bin_id: int, db: DbSession):
    return BinAllocationService(db).get_bin_contents(bin_id)
