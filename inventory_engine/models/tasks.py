"""Physical handling tasks: placing received goods and moving stock between bins."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, DateTime, Enum as SQLEnum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_engine.db.base import Base, TimestampMixin


class PlacementTaskStatus(str, Enum):
    """Status of a placement task."""

    PENDING = "pending"
    PLACED = "placed"


class TransferTaskStatus(str, Enum):
    """Status of a transfer task."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TransferUrgency(str, Enum):
    NORMAL = "normal"
    URGENT = "urgent"


class ItemSnapshotMixin:
    """Item identity and variant attributes copied onto a task at creation."""

    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    colour: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    size: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    variant: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)


class PlacementTask(Base, ItemSnapshotMixin, TimestampMixin):
    """Freshly received goods that still need a home bin."""

    __tablename__ = "placement_tasks"

    id: Mapped[int] = mapped_column(primary_key=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    serial_numbers: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    receipt_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("receipts.id", ondelete="SET NULL"), nullable=True, index=True
    )
    source_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)  # receipt number
    suggested_bin_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("bin_locations.id", ondelete="SET NULL"), nullable=True
    )
    suggested_bin_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[PlacementTaskStatus] = mapped_column(
        SQLEnum(PlacementTaskStatus), default=PlacementTaskStatus.PENDING, nullable=False, index=True
    )
    placed_bin_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("bin_locations.id", ondelete="SET NULL"), nullable=True
    )
    placed_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    placed_by_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    placed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    suggested_bin: Mapped[Optional["BinLocation"]] = relationship(
        "BinLocation", foreign_keys=[suggested_bin_id]
    )
    placed_bin: Mapped[Optional["BinLocation"]] = relationship(
        "BinLocation", foreign_keys=[placed_bin_id]
    )


class TransferTask(Base, ItemSnapshotMixin, TimestampMixin):
    """A multi-step move of an item from a source bin to a destination bin.

    ``current_step`` is owned by the handheld UI; the engine only cares
    whether the task has been completed.
    """

    __tablename__ = "transfer_tasks"

    id: Mapped[int] = mapped_column(primary_key=True)
    transfer_order_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("transfer_orders.id", ondelete="SET NULL"), nullable=True, index=True
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("1"), nullable=False)
    serial_numbers: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    source_bin_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("bin_locations.id", ondelete="SET NULL"), nullable=True
    )
    destination_bin_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("bin_locations.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[TransferTaskStatus] = mapped_column(
        SQLEnum(TransferTaskStatus), default=TransferTaskStatus.PENDING, nullable=False, index=True
    )
    urgency: Mapped[TransferUrgency] = mapped_column(
        SQLEnum(TransferUrgency), default=TransferUrgency.NORMAL, nullable=False
    )
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    assigned_to: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    assigned_to_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    current_step: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    completed_by_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Relationships
    source_bin: Mapped[Optional["BinLocation"]] = relationship(
        "BinLocation", foreign_keys=[source_bin_id]
    )
    destination_bin: Mapped[Optional["BinLocation"]] = relationship(
        "BinLocation", foreign_keys=[destination_bin_id]
    )


# Forward references
from inventory_engine.models.location import BinLocation
