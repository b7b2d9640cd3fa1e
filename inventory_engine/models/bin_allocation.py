"""Bin allocation model: how much of an item sits in which bin."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_engine.db.base import Base, utcnow


class BinAllocation(Base):
    """Quantity of one item present in one bin.

    ``serial_numbers`` keeps insertion order so that deallocations without
    explicit serials remove the oldest units first.
    """

    __tablename__ = "bin_allocations"
    __table_args__ = (
        UniqueConstraint("item_id", "bin_id", name="uq_bin_allocation_item_bin"),
        CheckConstraint("quantity >= 0", name="ck_bin_allocation_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    bin_id: Mapped[int] = mapped_column(
        ForeignKey("bin_locations.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), default=Decimal("0"), nullable=False
    )
    serial_numbers: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    bin: Mapped["BinLocation"] = relationship("BinLocation")
    item: Mapped["Item"] = relationship("Item")


# Forward references
from inventory_engine.models.item import Item
from inventory_engine.models.location import BinLocation
