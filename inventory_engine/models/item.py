"""Stocked item model."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Enum as SQLEnum, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_engine.db.base import Base, TimestampMixin


class TrackingType(str, Enum):
    """How individual units of an item are tracked."""

    NONE = "none"
    SERIAL = "serial"  # one serial number per unit


class Item(Base, TimestampMixin):
    """A stocked product identity.

    ``current_stock`` is the denormalized on-hand total. The batch ledger
    keeps it equal to the sum of active batch ``remaining_quantity``.
    """

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    colour: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    size: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    variant: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    tracking_type: Mapped[TrackingType] = mapped_column(
        SQLEnum(TrackingType), default=TrackingType.NONE, nullable=False
    )
    current_stock: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), default=Decimal("0"), server_default="0", nullable=False
    )

    @property
    def is_serial_tracked(self) -> bool:
        return self.tracking_type == TrackingType.SERIAL
