"""Batch ledger models: FIFO receipt lots and their deduction audit trail."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_engine.db.base import Base, utcnow


class BatchStatus(str, Enum):
    """Lifecycle of a batch."""

    ACTIVE = "active"
    DEPLETED = "depleted"  # remaining_quantity reached zero


class BatchSource(str, Enum):
    """What created the batch."""

    RECEIPT = "receipt"
    STOCK_COUNT = "stock_count"  # positive variance on an approved count
    MANUAL = "manual"


class DeductionType(str, Enum):
    """Why stock left a batch."""

    SALE = "sale"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"  # count corrections, damage write-offs


class Batch(Base):
    """One receipt lot of an item, consumed oldest-first.

    ``initial_quantity`` is fixed at creation; ``remaining_quantity`` only
    goes down. Batches are never deleted.
    """

    __tablename__ = "batches"
    __table_args__ = (
        CheckConstraint("initial_quantity > 0", name="ck_batch_initial_positive"),
        CheckConstraint("remaining_quantity >= 0", name="ck_batch_remaining_non_negative"),
        CheckConstraint("remaining_quantity <= initial_quantity", name="ck_batch_remaining_le_initial"),
        Index("ix_batches_fifo", "item_id", "status", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    initial_quantity: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    remaining_quantity: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    status: Mapped[BatchStatus] = mapped_column(
        SQLEnum(BatchStatus), default=BatchStatus.ACTIVE, nullable=False
    )
    source: Mapped[BatchSource] = mapped_column(
        SQLEnum(BatchSource), default=BatchSource.RECEIPT, nullable=False
    )
    bin_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("bin_locations.id", ondelete="SET NULL"), nullable=True
    )
    receipt_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("receipts.id", ondelete="SET NULL"), nullable=True, index=True
    )
    receipt_line_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("receipt_lines.id", ondelete="SET NULL"), nullable=True
    )
    stock_count_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("stock_counts.id", ondelete="SET NULL"), nullable=True
    )
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    # FIFO key; set in Python so batches created in one request keep their order
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    item: Mapped["Item"] = relationship("Item")
    bin: Mapped[Optional["BinLocation"]] = relationship("BinLocation")
    receipt: Mapped[Optional["Receipt"]] = relationship("Receipt")
    deductions: Mapped[list["BatchDeduction"]] = relationship(
        "BatchDeduction", back_populates="batch", order_by="BatchDeduction.id"
    )


class BatchDeduction(Base):
    """Immutable record of quantity taken from one batch by one deduction call."""

    __tablename__ = "batch_deductions"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_deduction_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    batch_id: Mapped[int] = mapped_column(
        ForeignKey("batches.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    deduction_type: Mapped[DeductionType] = mapped_column(SQLEnum(DeductionType), nullable=False)
    ref_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # sale, transfer_order, stock_count, damage_report
    ref_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    ref_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Relationships
    batch: Mapped["Batch"] = relationship("Batch", back_populates="deductions")


# Forward references
from inventory_engine.models.item import Item
from inventory_engine.models.location import BinLocation
from inventory_engine.models.documents import Receipt
