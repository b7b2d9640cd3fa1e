"""Location and storage bin models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Enum as SQLEnum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_engine.db.base import Base, TimestampMixin


class BinStatus(str, Enum):
    """Whether a bin can receive stock."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class Location(Base, TimestampMixin):
    """Physical site holding stock (warehouse, store, back room)."""

    __tablename__ = "locations"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, unique=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    bins: Mapped[list["BinLocation"]] = relationship("BinLocation", back_populates="location")


class BinLocation(Base, TimestampMixin):
    """A physical storage bin inside a location."""

    __tablename__ = "bin_locations"

    id: Mapped[int] = mapped_column(primary_key=True)
    bin_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    location_id: Mapped[int] = mapped_column(
        ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[BinStatus] = mapped_column(
        SQLEnum(BinStatus), default=BinStatus.ACTIVE, nullable=False
    )

    # Relationships
    location: Mapped["Location"] = relationship("Location", back_populates="bins")
