"""Batch ledger schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from inventory_engine.models.batch import BatchSource, BatchStatus, DeductionType
from inventory_engine.schemas.common import DocumentRef


class CreateBatchRequest(BaseModel):
    item_id: int
    quantity: Decimal
    source: BatchSource = BatchSource.MANUAL
    receipt_id: Optional[int] = None
    receipt_line_id: Optional[int] = None
    stock_count_id: Optional[int] = None
    bin_id: Optional[int] = None
    notes: Optional[str] = Field(default=None, max_length=500)


class DeductRequest(BaseModel):
    """FIFO deduction request.

    ``bin_id`` deallocates the same quantity from that bin in the same
    transaction. ``allow_partial`` opts a single call into partial
    fulfilment regardless of the configured policy.
    """

    item_id: int
    quantity: Decimal
    deduction_type: DeductionType = DeductionType.SALE
    origin: Optional[DocumentRef] = None
    bin_id: Optional[int] = None
    serial_numbers: Optional[List[str]] = None
    allow_partial: bool = False
    notes: Optional[str] = Field(default=None, max_length=500)


class BatchResponse(BaseModel):
    id: int
    item_id: int
    initial_quantity: Decimal
    remaining_quantity: Decimal
    status: BatchStatus
    source: BatchSource
    bin_id: Optional[int] = None
    bin_code: Optional[str] = None
    receipt_id: Optional[int] = None
    receipt_number: Optional[str] = None
    stock_count_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class BatchDeductionResponse(BaseModel):
    id: int
    batch_id: int
    quantity: Decimal
    deduction_type: DeductionType
    ref_type: Optional[str] = None
    ref_id: Optional[int] = None
    ref_number: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class DeductionResultResponse(BaseModel):
    item_id: int
    outcome: str
    requested: Decimal
    deducted: Decimal
    shortfall: Decimal
    deductions: List[BatchDeductionResponse]
