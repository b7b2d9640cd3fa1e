"""Placement and transfer task schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from inventory_engine.models.tasks import PlacementTaskStatus, TransferTaskStatus, TransferUrgency


class CreatePlacementTaskRequest(BaseModel):
    item_id: int
    quantity: Decimal
    serial_numbers: Optional[List[str]] = None
    receipt_id: Optional[int] = None
    source_reference: Optional[str] = Field(default=None, max_length=100)
    suggested_bin_id: Optional[int] = None
    suggested_bin_reason: Optional[str] = Field(default=None, max_length=255)


class PlaceItemRequest(BaseModel):
    bin_id: int


class PlacementTaskResponse(BaseModel):
    id: int
    item_id: int
    item_name: str
    sku: Optional[str] = None
    colour: Optional[str] = None
    size: Optional[str] = None
    variant: Optional[str] = None
    quantity: Decimal
    serial_numbers: Optional[List[str]] = None
    receipt_id: Optional[int] = None
    source_reference: Optional[str] = None
    suggested_bin_id: Optional[int] = None
    suggested_bin_reason: Optional[str] = None
    status: PlacementTaskStatus
    placed_bin_id: Optional[int] = None
    placed_by: Optional[int] = None
    placed_by_name: Optional[str] = None
    placed_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CreateTransferTaskRequest(BaseModel):
    item_id: int
    quantity: Decimal = Decimal("1")
    serial_numbers: Optional[List[str]] = None
    source_bin_id: Optional[int] = None
    destination_bin_id: Optional[int] = None
    urgency: TransferUrgency = TransferUrgency.NORMAL
    reason: Optional[str] = Field(default=None, max_length=500)
    assigned_to: Optional[int] = None
    assigned_to_name: Optional[str] = None


class AdvanceStepRequest(BaseModel):
    step: Optional[int] = Field(default=None, ge=0)


class TransferTaskResponse(BaseModel):
    id: int
    transfer_order_id: Optional[int] = None
    item_id: int
    item_name: str
    sku: Optional[str] = None
    quantity: Decimal
    serial_numbers: Optional[List[str]] = None
    source_bin_id: Optional[int] = None
    destination_bin_id: Optional[int] = None
    status: TransferTaskStatus
    urgency: TransferUrgency
    reason: Optional[str] = None
    assigned_to: Optional[int] = None
    assigned_to_name: Optional[str] = None
    current_step: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
