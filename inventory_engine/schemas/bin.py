"""Bin allocation schemas."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class AllocateRequest(BaseModel):
    item_id: int
    bin_id: int
    quantity: Decimal
    serial_numbers: Optional[List[str]] = None


class DeallocateRequest(AllocateRequest):
    pass


class BinAllocationResponse(BaseModel):
    item_id: int
    bin_id: int
    bin_code: Optional[str] = None
    quantity: Decimal
    serial_numbers: List[str] = []
