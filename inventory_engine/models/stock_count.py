"""Stock count (reconciliation) models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_engine.db.base import Base, TimestampMixin


class StockCountStatus(str, Enum):
    """Workflow status of a stock count."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    RECOUNT = "recount"
    COMPLETED = "completed"  # approved and closed out


class StockCountType(str, Enum):
    DELIVERY = "delivery"  # verifies a receipt
    AUDIT = "audit"  # verifies what a bin holds


class StockCountItemStatus(str, Enum):
    """Status of one count line."""

    PENDING = "pending"
    COUNTED = "counted"  # counted == expected
    MISMATCH = "mismatch"


class StockCount(Base, TimestampMixin):
    """A reconciliation exercise over one bin or one receipt.

    The aggregate columns (``total_items`` .. ``accuracy_percentage``) are
    written only by the recompute step that runs after every line change.
    """

    __tablename__ = "stock_counts"

    id: Mapped[int] = mapped_column(primary_key=True)
    receipt_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("receipts.id", ondelete="SET NULL"), nullable=True, index=True
    )
    location_id: Mapped[int] = mapped_column(
        ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    bin_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("bin_locations.id", ondelete="SET NULL"), nullable=True, index=True
    )
    count_type: Mapped[StockCountType] = mapped_column(
        SQLEnum(StockCountType), default=StockCountType.AUDIT, nullable=False
    )
    status: Mapped[StockCountStatus] = mapped_column(
        SQLEnum(StockCountStatus), default=StockCountStatus.PENDING, nullable=False, index=True
    )
    assigned_to: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    assigned_to_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    assigned_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    auto_generated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Aggregates
    total_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    counted_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    matched_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    mismatched_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    accuracy_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), default=Decimal("0"), nullable=False
    )

    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reviewed_by_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    items: Mapped[list["StockCountItem"]] = relationship(
        "StockCountItem", back_populates="stock_count", cascade="all, delete-orphan",
        order_by="StockCountItem.id",
    )
    bin: Mapped[Optional["BinLocation"]] = relationship("BinLocation")
    location: Mapped["Location"] = relationship("Location")

    @property
    def is_terminal(self) -> bool:
        return self.status in (
            StockCountStatus.APPROVED,
            StockCountStatus.REJECTED,
            StockCountStatus.COMPLETED,
        )


class StockCountItem(Base):
    """One expected line of a stock count."""

    __tablename__ = "stock_count_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    stock_count_id: Mapped[int] = mapped_column(
        ForeignKey("stock_counts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    serial_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    receipt_line_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("receipt_lines.id", ondelete="SET NULL"), nullable=True
    )
    expected_quantity: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    counted_quantity: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)
    variance: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)
    status: Mapped[StockCountItemStatus] = mapped_column(
        SQLEnum(StockCountItemStatus), default=StockCountItemStatus.PENDING, nullable=False
    )
    counted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    adjustment_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Relationships
    stock_count: Mapped["StockCount"] = relationship("StockCount", back_populates="items")


# Forward references
from inventory_engine.models.location import BinLocation, Location
