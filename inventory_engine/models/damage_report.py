"""Damage report model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum as SQLEnum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_engine.db.base import Base, TimestampMixin


class DamageReportStatus(str, Enum):
    """Review status of a damage report."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DamageSeverity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"
    TOTAL_LOSS = "total_loss"


class DamageReport(Base, TimestampMixin):
    """Damaged units found during counting or handling.

    Approval writes the damaged quantity off at the reported bin and in
    the batch ledger; ``stock_adjusted`` flips once, on that approval.
    """

    __tablename__ = "damage_reports"

    id: Mapped[int] = mapped_column(primary_key=True)
    stock_count_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("stock_counts.id", ondelete="SET NULL"), nullable=True, index=True
    )
    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    serial_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("1"), nullable=False)
    bin_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("bin_locations.id", ondelete="SET NULL"), nullable=True
    )
    damage_type: Mapped[str] = mapped_column(String(50), nullable=False)  # e.g. broken, water, torn
    severity: Mapped[DamageSeverity] = mapped_column(
        SQLEnum(DamageSeverity), default=DamageSeverity.MODERATE, nullable=False
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    photo_reference: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    reported_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reported_by_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[DamageReportStatus] = mapped_column(
        SQLEnum(DamageReportStatus), default=DamageReportStatus.PENDING, nullable=False, index=True
    )
    stock_adjusted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reviewed_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reviewed_by_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    bin: Mapped[Optional["BinLocation"]] = relationship("BinLocation")


# Forward references
from inventory_engine.models.location import BinLocation
