"""Bin Allocation Service - where each item physically sits.

Tracks quantity (and serial numbers, for serial-tracked items) per
(item, bin). Every change takes a row lock on the allocation so that two
concurrent moves out of the same bin cannot both pass the on-hand check.

Public methods commit their own transaction. The ``apply_*`` variants do
the same work without committing, for use inside another service's
transaction (placement, transfers, damage write-offs, count approval).
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from inventory_engine.core.exceptions import InsufficientStockAtBin, NotFoundError, ValidationError
from inventory_engine.db.transaction import atomic
from inventory_engine.models.bin_allocation import BinAllocation
from inventory_engine.models.item import Item
from inventory_engine.models.location import BinLocation, BinStatus
from inventory_engine.services.validation import normalize_serials, require_positive

logger = logging.getLogger(__name__)


class BinAllocationService:
    """Allocate, deallocate and query item quantities per bin."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def allocate(
        self,
        item_id: int,
        bin_id: int,
        quantity,
        serial_numbers: Optional[List[str]] = None,
    ) -> BinAllocation:
        """Add ``quantity`` of an item to a bin, creating the allocation if needed."""
        quantity = require_positive(quantity)
        with atomic(self.db):
            allocation = self.apply_allocate(item_id, bin_id, quantity, serial_numbers)
        return allocation

    def deallocate(
        self,
        item_id: int,
        bin_id: int,
        quantity,
        serial_numbers: Optional[List[str]] = None,
    ) -> BinAllocation:
        """Remove ``quantity`` of an item from a bin.

        Raises:
            InsufficientStockAtBin: If the bin holds less than ``quantity``.
                Nothing is written.
            ValidationError: If explicit serials are not at the bin.
        """
        quantity = require_positive(quantity)
        with atomic(self.db):
            allocation = self.apply_deallocate(item_id, bin_id, quantity, serial_numbers)
        return allocation

    def apply_allocate(
        self,
        item_id: int,
        bin_id: int,
        quantity,
        serial_numbers: Optional[List[str]] = None,
    ) -> BinAllocation:
        quantity = require_positive(quantity)
        serials = normalize_serials(serial_numbers, quantity)

        if not self.db.get(Item, item_id):
            raise NotFoundError("Item", item_id)
        bin_location = self.db.get(BinLocation, bin_id)
        if not bin_location:
            raise NotFoundError("Bin", bin_id)
        if bin_location.status != BinStatus.ACTIVE:
            raise ValidationError(
                f"Bin {bin_location.bin_code} is inactive", bin_id=bin_id, field="bin_id"
            )

        allocation = self._locked_allocation(item_id, bin_id)
        if allocation is None:
            allocation = BinAllocation(
                item_id=item_id, bin_id=bin_id, quantity=Decimal("0"), serial_numbers=[]
            )
            self.db.add(allocation)

        existing_serials = list(allocation.serial_numbers or [])
        duplicates = sorted(set(serials) & set(existing_serials))
        if duplicates:
            raise ValidationError(
                f"Serial numbers already at bin {bin_location.bin_code}: {', '.join(duplicates)}",
                field="serial_numbers",
                bin_id=bin_id,
            )

        allocation.quantity = (allocation.quantity or Decimal("0")) + quantity
        if serials:
            allocation.serial_numbers = existing_serials + serials
        self.db.flush()

        logger.info(
            f"Allocated {quantity} of item {item_id} to bin {bin_location.bin_code} (now {allocation.quantity})"
        )
        return allocation

    def apply_deallocate(
        self,
        item_id: int,
        bin_id: int,
        quantity,
        serial_numbers: Optional[List[str]] = None,
    ) -> BinAllocation:
        quantity = require_positive(quantity)
        serials = normalize_serials(serial_numbers, quantity)

        allocation = self._locked_allocation(item_id, bin_id)
        on_hand = allocation.quantity if allocation else Decimal("0")
        if quantity > on_hand:
            raise InsufficientStockAtBin(item_id, bin_id, quantity, on_hand)

        current_serials = list(allocation.serial_numbers or [])
        if serials:
            missing = [s for s in serials if s not in current_serials]
            if missing:
                raise ValidationError(
                    f"Serial numbers not at bin {bin_id}: {', '.join(missing)}",
                    field="serial_numbers",
                    bin_id=bin_id,
                )
            removed = set(serials)
            remaining_serials = [s for s in current_serials if s not in removed]
        elif current_serials:
            # Oldest units leave first when the caller does not name serials
            remaining_serials = current_serials[int(quantity):]
        else:
            remaining_serials = current_serials

        allocation.quantity = on_hand - quantity
        allocation.serial_numbers = remaining_serials
        self.db.flush()

        logger.info(
            f"Deallocated {quantity} of item {item_id} from bin {bin_id} (now {allocation.quantity})"
        )
        return allocation

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def query(self, item_id: int) -> List[Dict[str, Any]]:
        """Bins currently holding the item, largest quantity first."""
        rows = (
            self.db.query(BinAllocation, BinLocation)
            .join(BinLocation, BinLocation.id == BinAllocation.bin_id)
            .filter(BinAllocation.item_id == item_id, BinAllocation.quantity > 0)
            .order_by(BinAllocation.quantity.desc(), BinLocation.bin_code.asc())
            .all()
        )
        return [_format_allocation(allocation, bin_location) for allocation, bin_location in rows]

    def get_bin_contents(self, bin_id: int) -> List[Dict[str, Any]]:
        bin_location = self.db.get(BinLocation, bin_id)
        if not bin_location:
            raise NotFoundError("Bin", bin_id)
        allocations = (
            self.db.query(BinAllocation)
            .filter(BinAllocation.bin_id == bin_id, BinAllocation.quantity > 0)
            .order_by(BinAllocation.item_id.asc())
            .all()
        )
        return [_format_allocation(a, bin_location) for a in allocations]

    def on_hand(self, item_id: int, bin_id: int) -> Decimal:
        allocation = (
            self.db.query(BinAllocation)
            .filter(BinAllocation.item_id == item_id, BinAllocation.bin_id == bin_id)
            .first()
        )
        return allocation.quantity if allocation else Decimal("0")

    def largest_allocation(
        self, item_id: int, location_id: Optional[int] = None
    ) -> Optional[BinAllocation]:
        """The bin holding most of an item, optionally within one location."""
        query = (
            self.db.query(BinAllocation)
            .join(BinLocation, BinLocation.id == BinAllocation.bin_id)
            .filter(BinAllocation.item_id == item_id, BinAllocation.quantity > 0)
        )
        if location_id is not None:
            query = query.filter(BinLocation.location_id == location_id)
        return query.order_by(BinAllocation.quantity.desc(), BinAllocation.id.asc()).first()

    def _locked_allocation(self, item_id: int, bin_id: int) -> Optional[BinAllocation]:
        return (
            self.db.query(BinAllocation)
            .filter(BinAllocation.item_id == item_id, BinAllocation.bin_id == bin_id)
            .with_for_update()
            .first()
        )


def _format_allocation(allocation: BinAllocation, bin_location: BinLocation) -> Dict[str, Any]:
    return {
        "item_id": allocation.item_id,
        "bin_id": allocation.bin_id,
        "bin_code": bin_location.bin_code,
        "quantity": allocation.quantity,
        "serial_numbers": list(allocation.serial_numbers or []),
    }
