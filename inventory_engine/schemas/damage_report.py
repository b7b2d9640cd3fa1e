"""Damage report schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from inventory_engine.models.damage_report import DamageReportStatus, DamageSeverity


class CreateDamageReportRequest(BaseModel):
    item_id: int
    quantity: Decimal = Decimal("1")
    bin_id: Optional[int] = None
    serial_number: Optional[str] = Field(default=None, max_length=100)
    stock_count_id: Optional[int] = None
    damage_type: str = Field(..., min_length=1, max_length=50)
    severity: DamageSeverity = DamageSeverity.MODERATE
    description: Optional[str] = None
    photo_reference: Optional[str] = Field(default=None, max_length=500)


class ReviewDamageReportRequest(BaseModel):
    notes: Optional[str] = None


class DamageReportResponse(BaseModel):
    id: int
    stock_count_id: Optional[int] = None
    item_id: int
    item_name: str
    serial_number: Optional[str] = None
    quantity: Decimal
    bin_id: Optional[int] = None
    damage_type: str
    severity: DamageSeverity
    description: Optional[str] = None
    photo_reference: Optional[str] = None
    reported_by: Optional[int] = None
    reported_by_name: Optional[str] = None
    status: DamageReportStatus
    stock_adjusted: bool
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
