"""Batch Ledger Service - FIFO receipt lots and their deduction audit trail.

Stock for an item is held in batches, one per receipt line. Deductions
consume the oldest active batch first:

1. Lock the item row, then fetch its active batches with stock left,
   oldest first (``created_at``, then ``id``), ``FOR UPDATE``.
2. Take ``min(outstanding, batch.remaining_quantity)`` from each batch,
   flip it to ``depleted`` at zero and append one BatchDeduction per
   batch touched.
3. Stop once the requested quantity is satisfied.
4. If the batches cannot cover the request, the configured shortfall
   policy decides: ``reject`` raises ``InsufficientStockError`` and
   writes nothing; ``partial`` applies what is available and reports the
   shortfall in the returned ``DeductionResult``.

Batch updates, deduction rows and the item's ``current_stock`` are always
written in one transaction.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from inventory_engine.core.config import settings
from inventory_engine.core.exceptions import InsufficientStockError, NotFoundError
from inventory_engine.db.transaction import atomic
from inventory_engine.models.batch import Batch, BatchDeduction, BatchStatus
from inventory_engine.models.documents import Receipt, TransferOrder
from inventory_engine.models.item import Item
from inventory_engine.models.location import BinLocation
from inventory_engine.schemas.batch import CreateBatchRequest, DeductRequest
from inventory_engine.services.bin_allocation_service import BinAllocationService
from inventory_engine.services.validation import normalize_serials, require_positive

logger = logging.getLogger(__name__)


class DeductionOutcome(str, Enum):
    FULFILLED = "fulfilled"
    PARTIAL = "partial"
    NO_BATCHES = "no_batches"


@dataclass
class DeductionResult:
    """What a FIFO deduction actually took from the ledger."""

    item_id: int
    requested: Decimal
    deducted: Decimal
    outcome: DeductionOutcome
    deductions: List[BatchDeduction] = field(default_factory=list)

    @property
    def shortfall(self) -> Decimal:
        return self.requested - self.deducted

    @property
    def fulfilled(self) -> bool:
        return self.outcome == DeductionOutcome.FULFILLED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_id": self.item_id,
            "outcome": self.outcome.value,
            "requested": self.requested,
            "deducted": self.deducted,
            "shortfall": self.shortfall,
            "deductions": [_format_deduction(d) for d in self.deductions],
        }


class BatchLedgerService:
    """Creates batches and deducts from them oldest-first."""

    def __init__(self, db: Session, shortfall_policy: Optional[str] = None):
        self.db = db
        self.shortfall_policy = shortfall_policy or settings.deduction_shortfall_policy

    # ------------------------------------------------------------------
    # create_batch
    # ------------------------------------------------------------------
    def create_batch(self, request: CreateBatchRequest) -> Batch:
        """Create an active batch and add its quantity to the item's stock.

        Raises:
            ValidationError: If the quantity is not positive.
            NotFoundError: If the item or bin does not exist.
        """
        require_positive(request.quantity)
        with atomic(self.db):
            batch = self.apply_create_batch(request)
        self.db.refresh(batch)
        return batch

    def apply_create_batch(self, request: CreateBatchRequest) -> Batch:
        quantity = require_positive(request.quantity)
        item = self._get_item(request.item_id, lock=True)
        if request.bin_id is not None and not self.db.get(BinLocation, request.bin_id):
            raise NotFoundError("Bin", request.bin_id)

        batch = Batch(
            item_id=item.id,
            initial_quantity=quantity,
            remaining_quantity=quantity,
            status=BatchStatus.ACTIVE,
            source=request.source,
            bin_id=request.bin_id,
            receipt_id=request.receipt_id,
            receipt_line_id=request.receipt_line_id,
            stock_count_id=request.stock_count_id,
            notes=request.notes,
        )
        self.db.add(batch)
        item.current_stock = (item.current_stock or Decimal("0")) + quantity
        self.db.flush()

        logger.info(
            f"Created batch ID={batch.id} for item {item.id}: qty={quantity} source={request.source.value}"
        )
        return batch

    # ------------------------------------------------------------------
    # deduct
    # ------------------------------------------------------------------
    def deduct(self, request: DeductRequest) -> DeductionResult:
        """Deduct stock FIFO across the item's active batches.

        Args:
            request: Item, quantity, deduction type and originating document.
                When ``bin_id`` is set the same quantity leaves that bin in
                the same transaction.

        Returns:
            A ``DeductionResult`` whose ``outcome`` tells fully satisfied,
            partially satisfied and no-batches apart.

        Raises:
            InsufficientStockError: On a shortfall under the ``reject``
                policy. Nothing is written.
            InsufficientStockAtBin: If ``bin_id`` holds less than the
                deducted quantity. Nothing is written.
        """
        quantity = require_positive(request.quantity)
        normalize_serials(request.serial_numbers, quantity)
        with atomic(self.db):
            result = self.apply_deduct(request)
        return result

    def apply_deduct(self, request: DeductRequest) -> DeductionResult:
        quantity = require_positive(request.quantity)
        serials = normalize_serials(request.serial_numbers, quantity)
        item = self._get_item(request.item_id, lock=True)

        batches = (
            self.db.query(Batch)
            .filter(
                Batch.item_id == item.id,
                Batch.status == BatchStatus.ACTIVE,
                Batch.remaining_quantity > 0,
            )
            .order_by(Batch.created_at.asc(), Batch.id.asc())
            .with_for_update()
            .all()
        )
        available = sum((b.remaining_quantity for b in batches), Decimal("0"))
        allow_partial = request.allow_partial or self.shortfall_policy == "partial"

        if available < quantity and not allow_partial:
            logger.warning(
                f"Rejected deduction of {quantity} for item {item.id}: only {available} in active batches"
            )
            raise InsufficientStockError(item.id, quantity, available, item.name)

        if not batches:
            logger.warning(f"No active batches for item {item.id}, nothing deducted")
            return DeductionResult(
                item_id=item.id,
                requested=quantity,
                deducted=Decimal("0"),
                outcome=DeductionOutcome.NO_BATCHES,
            )

        origin = request.origin
        remaining = quantity
        deductions: List[BatchDeduction] = []
        for batch in batches:
            if remaining <= 0:
                break

            take = min(remaining, batch.remaining_quantity)
            batch.remaining_quantity = batch.remaining_quantity - take
            if batch.remaining_quantity == 0:
                batch.status = BatchStatus.DEPLETED
            remaining -= take

            deduction = BatchDeduction(
                batch_id=batch.id,
                quantity=take,
                deduction_type=request.deduction_type,
                ref_type=origin.ref_type if origin else None,
                ref_id=origin.ref_id if origin else None,
                ref_number=origin.ref_number if origin else None,
                notes=request.notes,
            )
            self.db.add(deduction)
            deductions.append(deduction)

        deducted = quantity - remaining
        item.current_stock = (item.current_stock or Decimal("0")) - deducted

        if request.bin_id is not None and deducted > 0:
            BinAllocationService(self.db).apply_deallocate(
                item.id,
                request.bin_id,
                deducted,
                serials[: int(deducted)] if serials else None,
            )

        self.db.flush()

        if remaining > 0:
            logger.warning(
                f"FIFO batch shortage for item {item.id}: requested {quantity}, deducted {deducted}, short {remaining}"
            )
            outcome = DeductionOutcome.PARTIAL
        else:
            outcome = DeductionOutcome.FULFILLED

        logger.info(
            f"Deducted {deducted} of item {item.id} ({request.deduction_type.value}) across {len(deductions)} batch(es)"
        )
        return DeductionResult(
            item_id=item.id,
            requested=quantity,
            deducted=deducted,
            outcome=outcome,
            deductions=deductions,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_batch(self, batch_id: int) -> Batch:
        batch = self.db.get(Batch, batch_id)
        if not batch:
            raise NotFoundError("Batch", batch_id)
        return batch

    def get_batches_for_item(self, item_id: int, include_empty: bool = False) -> List[Dict[str, Any]]:
        """Batches for an item, oldest first, with receipt number and bin code."""
        if not self.db.get(Item, item_id):
            raise NotFoundError("Item", item_id)

        query = (
            self.db.query(Batch, Receipt.receipt_number, BinLocation.bin_code)
            .outerjoin(Receipt, Receipt.id == Batch.receipt_id)
            .outerjoin(BinLocation, BinLocation.id == Batch.bin_id)
            .filter(Batch.item_id == item_id)
        )
        if not include_empty:
            query = query.filter(Batch.status == BatchStatus.ACTIVE, Batch.remaining_quantity > 0)

        rows = query.order_by(Batch.created_at.asc(), Batch.id.asc()).all()
        return [
            _format_batch(batch, receipt_number, bin_code)
            for batch, receipt_number, bin_code in rows
        ]

    def get_batch_deductions(self, batch_id: int) -> List[Dict[str, Any]]:
        """Deductions from one batch, newest first, with the origin document number."""
        self.get_batch(batch_id)
        deductions = (
            self.db.query(BatchDeduction)
            .filter(BatchDeduction.batch_id == batch_id)
            .order_by(BatchDeduction.created_at.desc(), BatchDeduction.id.desc())
            .all()
        )

        transfer_ids = {
            d.ref_id for d in deductions
            if d.ref_type == "transfer_order" and d.ref_id and not d.ref_number
        }
        transfer_numbers = {}
        if transfer_ids:
            transfer_numbers = dict(
                self.db.query(TransferOrder.id, TransferOrder.transfer_number)
                .filter(TransferOrder.id.in_(transfer_ids))
                .all()
            )

        result = []
        for deduction in deductions:
            data = _format_deduction(deduction)
            if not data["ref_number"] and deduction.ref_id in transfer_numbers:
                data["ref_number"] = transfer_numbers[deduction.ref_id]
            result.append(data)
        return result

    def _get_item(self, item_id: int, lock: bool = False) -> Item:
        query = self.db.query(Item).filter(Item.id == item_id)
        if lock:
            query = query.with_for_update()
        item = query.first()
        if not item:
            raise NotFoundError("Item", item_id)
        return item


def _format_batch(batch: Batch, receipt_number: Optional[str], bin_code: Optional[str]) -> Dict[str, Any]:
    return {
        "id": batch.id,
        "item_id": batch.item_id,
        "initial_quantity": batch.initial_quantity,
        "remaining_quantity": batch.remaining_quantity,
        "status": batch.status,
        "source": batch.source,
        "bin_id": batch.bin_id,
        "bin_code": bin_code,
        "receipt_id": batch.receipt_id,
        "receipt_number": receipt_number,
        "stock_count_id": batch.stock_count_id,
        "notes": batch.notes,
        "created_at": batch.created_at,
    }


def _format_deduction(deduction: BatchDeduction) -> Dict[str, Any]:
    return {
        "id": deduction.id,
        "batch_id": deduction.batch_id,
        "quantity": deduction.quantity,
        "deduction_type": deduction.deduction_type,
        "ref_type": deduction.ref_type,
        "ref_id": deduction.ref_id,
        "ref_number": deduction.ref_number,
        "notes": deduction.notes,
        "created_at": deduction.created_at,
    }
