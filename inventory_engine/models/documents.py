"""Source documents the engine reads from: receipts and transfer orders.

These are owned by the receiving and transfer-order modules of the host
system. The engine only reads them to fan out batches and tasks.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, DateTime, Enum as SQLEnum, ForeignKey, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_engine.db.base import Base, TimestampMixin


class TransferOrderStatus(str, Enum):
    """Status of a transfer order."""

    DRAFT = "draft"
    IN_TRANSIT = "in_transit"
    RECEIVED = "received"
    CANCELLED = "cancelled"


class Receipt(Base, TimestampMixin):
    """A receiving document (vendor bill / goods receipt)."""

    __tablename__ = "receipts"

    id: Mapped[int] = mapped_column(primary_key=True)
    receipt_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    vendor_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    location_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("locations.id", ondelete="SET NULL"), nullable=True
    )
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    lines: Mapped[list["ReceiptLine"]] = relationship(
        "ReceiptLine", back_populates="receipt", cascade="all, delete-orphan",
        order_by="ReceiptLine.id",
    )


class ReceiptLine(Base):
    """One received item on a receipt."""

    __tablename__ = "receipt_lines"

    id: Mapped[int] = mapped_column(primary_key=True)
    receipt_id: Mapped[int] = mapped_column(
        ForeignKey("receipts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    bin_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("bin_locations.id", ondelete="SET NULL"), nullable=True
    )
    serial_numbers: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    # Relationships
    receipt: Mapped["Receipt"] = relationship("Receipt", back_populates="lines")
    item: Mapped["Item"] = relationship("Item")


class TransferOrder(Base, TimestampMixin):
    """A request to move stock between locations."""

    __tablename__ = "transfer_orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    transfer_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    source_location_id: Mapped[int] = mapped_column(
        ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False
    )
    destination_location_id: Mapped[int] = mapped_column(
        ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False
    )
    status: Mapped[TransferOrderStatus] = mapped_column(
        SQLEnum(TransferOrderStatus), default=TransferOrderStatus.DRAFT, nullable=False
    )
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Relationships
    lines: Mapped[list["TransferOrderLine"]] = relationship(
        "TransferOrderLine", back_populates="order", cascade="all, delete-orphan",
        order_by="TransferOrderLine.id",
    )
    allocations: Mapped[list["TransferOrderAllocation"]] = relationship(
        "TransferOrderAllocation", back_populates="order", cascade="all, delete-orphan",
        order_by="TransferOrderAllocation.id",
    )


class TransferOrderLine(Base):
    """One item requested on a transfer order."""

    __tablename__ = "transfer_order_lines"

    id: Mapped[int] = mapped_column(primary_key=True)
    transfer_order_id: Mapped[int] = mapped_column(
        ForeignKey("transfer_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    serial_numbers: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    # Relationships
    order: Mapped["TransferOrder"] = relationship("TransferOrder", back_populates="lines")
    item: Mapped["Item"] = relationship("Item")


class TransferOrderAllocation(Base):
    """Planned bin-to-bin move for an item on a transfer order."""

    __tablename__ = "transfer_order_allocations"

    id: Mapped[int] = mapped_column(primary_key=True)
    transfer_order_id: Mapped[int] = mapped_column(
        ForeignKey("transfer_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id", ondelete="RESTRICT"), nullable=False
    )
    source_bin_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("bin_locations.id", ondelete="SET NULL"), nullable=True
    )
    destination_bin_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("bin_locations.id", ondelete="SET NULL"), nullable=True
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    # Relationships
    order: Mapped["TransferOrder"] = relationship("TransferOrder", back_populates="allocations")


# Forward references
from inventory_engine.models.item import Item
