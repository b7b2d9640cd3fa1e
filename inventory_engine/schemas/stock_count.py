"""Stock count schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from inventory_engine.models.stock_count import (
    StockCountItemStatus,
    StockCountStatus,
    StockCountType,
)


class CountLineInput(BaseModel):
    """An explicitly supplied expected line."""

    item_id: int
    expected_quantity: Decimal
    serial_number: Optional[str] = Field(default=None, max_length=100)
    receipt_line_id: Optional[int] = None


class CreateStockCountRequest(BaseModel):
    """Create a count from explicit lines, a receipt, or a snapshot of a bin.

    Line sources are tried in that order: ``lines``, then ``receipt_id``,
    then the current contents of ``bin_id``.
    """

    location_id: Optional[int] = None
    bin_id: Optional[int] = None
    receipt_id: Optional[int] = None
    count_type: Optional[StockCountType] = None
    lines: Optional[List[CountLineInput]] = None
    assigned_to: Optional[int] = None
    assigned_to_name: Optional[str] = Field(default=None, max_length=255)
    due_date: Optional[date] = None
    auto_generated: bool = False
    notes: Optional[str] = None


class RecordCountRequest(BaseModel):
    counted_quantity: Decimal
    notes: Optional[str] = None


class LineCountInput(RecordCountRequest):
    line_id: int


class BulkRecordCountRequest(BaseModel):
    counts: List[LineCountInput] = Field(..., min_length=1)


class ApproveCountRequest(BaseModel):
    # line id -> reason, required for every mismatched line
    adjustment_reasons: Dict[int, str] = {}
    review_notes: Optional[str] = None


class ReviewCountRequest(BaseModel):
    review_notes: Optional[str] = None


class StockCountItemResponse(BaseModel):
    id: int
    item_id: int
    item_name: str
    sku: Optional[str] = None
    serial_number: Optional[str] = None
    receipt_line_id: Optional[int] = None
    expected_quantity: Decimal
    counted_quantity: Optional[Decimal] = None
    variance: Optional[Decimal] = None
    status: StockCountItemStatus
    counted_at: Optional[datetime] = None
    notes: Optional[str] = None
    adjustment_reason: Optional[str] = None

    model_config = {"from_attributes": True}


class StockCountSummaryResponse(BaseModel):
    id: int
    receipt_id: Optional[int] = None
    location_id: int
    bin_id: Optional[int] = None
    count_type: StockCountType
    status: StockCountStatus
    assigned_to: Optional[int] = None
    assigned_to_name: Optional[str] = None
    due_date: Optional[date] = None
    auto_generated: bool
    total_items: int
    counted_items: int
    matched_items: int
    mismatched_items: int
    accuracy_percentage: Decimal
    started_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None
    review_notes: Optional[str] = None
    closed_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class StockCountResponse(StockCountSummaryResponse):
    items: List[StockCountItemResponse] = []
