"""Stock count service - physical counts reconciled against book stock.

Workflow::

    pending -> in_progress -> submitted -> approved -> completed
                                        -> rejected
                                        -> recount -> in_progress

Count aggregates (counted / matched / mismatched / accuracy) are derived
from the count's lines by ``compute_count_aggregates`` and written back
after every line change, never incremented on their own.

Approval is the only step with a stock effect: every mismatched line is
written back into the batch ledger and the count's bin in one transaction.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from inventory_engine.core.context import EngineContext
from inventory_engine.core.exceptions import (
    IncompleteCountError,
    NotFoundError,
    StateTransitionError,
    ValidationError,
)
from inventory_engine.db.transaction import atomic
from inventory_engine.models.batch import BatchSource, DeductionType
from inventory_engine.models.bin_allocation import BinAllocation
from inventory_engine.models.documents import Receipt
from inventory_engine.models.item import Item
from inventory_engine.models.location import BinLocation
from inventory_engine.models.stock_count import (
    StockCount,
    StockCountItem,
    StockCountItemStatus,
    StockCountStatus,
    StockCountType,
)
from inventory_engine.schemas.batch import CreateBatchRequest, DeductRequest
from inventory_engine.schemas.common import DocumentRef
from inventory_engine.schemas.stock_count import (
    ApproveCountRequest,
    CreateStockCountRequest,
    LineCountInput,
)
from inventory_engine.services.batch_ledger_service import BatchLedgerService
from inventory_engine.services.bin_allocation_service import BinAllocationService
from inventory_engine.services.validation import require_non_negative

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")

# Statuses whose accuracy counts towards reporting averages
REVIEWED_STATUSES = (
    StockCountStatus.SUBMITTED,
    StockCountStatus.APPROVED,
    StockCountStatus.REJECTED,
    StockCountStatus.COMPLETED,
)


@dataclass(frozen=True)
class CountAggregates:
    total_items: int
    counted_items: int
    matched_items: int
    mismatched_items: int
    accuracy_percentage: Decimal


def compute_count_aggregates(items: Iterable[StockCountItem]) -> CountAggregates:
    """Derive a count's aggregate fields from its lines.

    ``accuracy_percentage`` is ``matched / counted * 100`` rounded half-up
    to two places, or 0 while nothing has been counted.
    """
    items = list(items)
    counted = [i for i in items if i.counted_quantity is not None]
    matched = sum(1 for i in counted if i.status == StockCountItemStatus.COUNTED)
    mismatched = sum(1 for i in counted if i.status == StockCountItemStatus.MISMATCH)

    if counted:
        accuracy = (Decimal(matched) / Decimal(len(counted)) * 100).quantize(
            TWO_PLACES, rounding=ROUND_HALF_UP
        )
    else:
        accuracy = Decimal("0.00")

    return CountAggregates(
        total_items=len(items),
        counted_items=len(counted),
        matched_items=matched,
        mismatched_items=mismatched,
        accuracy_percentage=accuracy,
    )


class StockCountService:
    """Drives the stock count workflow."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # create_count
    # ------------------------------------------------------------------
    def create_count(self, request: CreateStockCountRequest, ctx: EngineContext) -> StockCount:
        """Create a pending count with its expected lines.

        Lines come from ``request.lines`` if given, else from the receipt
        (``delivery`` count), else from a snapshot of the bin's current
        allocations (``audit`` count). Serial-tracked items get one line per
        serial number with an expected quantity of 1.

        Raises:
            ValidationError: If no line source or no location can be
                resolved, or the count would have no lines.
            NotFoundError: If a referenced bin, receipt or item is missing.
        """
        if not request.lines and request.receipt_id is None and request.bin_id is None:
            raise ValidationError(
                "A stock count needs explicit lines, a receipt or a bin to snapshot",
                field="lines",
            )
        for line in request.lines or []:
            require_non_negative(line.expected_quantity, "expected_quantity")

        with atomic(self.db):
            bin_location = None
            if request.bin_id is not None:
                bin_location = self.db.get(BinLocation, request.bin_id)
                if not bin_location:
                    raise NotFoundError("Bin", request.bin_id)

            receipt = None
            if request.receipt_id is not None:
                receipt = self.db.get(Receipt, request.receipt_id)
                if not receipt:
                    raise NotFoundError("Receipt", request.receipt_id)

            location_id = (
                (bin_location.location_id if bin_location else None)
                or request.location_id
                or (receipt.location_id if receipt else None)
                or ctx.default_location_id
            )
            if location_id is None:
                raise ValidationError(
                    "No location given and no default location configured", field="location_id"
                )

            if request.lines:
                lines = self._lines_from_input(request)
            elif receipt is not None:
                lines = self._lines_from_receipt(receipt)
            else:
                lines = self._lines_from_bin(bin_location)
            if not lines:
                raise ValidationError("Stock count has no lines to count", field="lines")

            count_type = request.count_type or (
                StockCountType.DELIVERY if receipt is not None else StockCountType.AUDIT
            )
            count = StockCount(
                receipt_id=request.receipt_id,
                location_id=location_id,
                bin_id=request.bin_id,
                count_type=count_type,
                status=StockCountStatus.PENDING,
                assigned_to=request.assigned_to,
                assigned_to_name=request.assigned_to_name,
                assigned_by=ctx.actor_id,
                due_date=request.due_date,
                auto_generated=request.auto_generated,
                notes=request.notes,
            )
            count.items = lines
            self._apply_aggregates(count)
            self.db.add(count)
            self.db.flush()

        logger.info(
            f"Created {count_type.value} stock count ID={count.id} with {len(lines)} line(s)"
        )
        return count

    def _lines_from_input(self, request: CreateStockCountRequest) -> List[StockCountItem]:
        lines = []
        for line in request.lines:
            item = self._get_item(line.item_id)
            lines.append(
                StockCountItem(
                    item_id=item.id,
                    item_name=item.name,
                    sku=item.sku,
                    serial_number=line.serial_number,
                    receipt_line_id=line.receipt_line_id,
                    expected_quantity=line.expected_quantity,
                    status=StockCountItemStatus.PENDING,
                )
            )
        return lines

    def _lines_from_receipt(self, receipt: Receipt) -> List[StockCountItem]:
        lines = []
        for receipt_line in receipt.lines:
            item = receipt_line.item
            if item.is_serial_tracked and receipt_line.serial_numbers:
                for serial in receipt_line.serial_numbers:
                    lines.append(self._line(item, Decimal("1"), serial, receipt_line.id))
            else:
                lines.append(self._line(item, receipt_line.quantity, None, receipt_line.id))
        return lines

    def _lines_from_bin(self, bin_location: BinLocation) -> List[StockCountItem]:
        allocations = (
            self.db.query(BinAllocation)
            .filter(BinAllocation.bin_id == bin_location.id, BinAllocation.quantity > 0)
            .order_by(BinAllocation.item_id.asc())
            .all()
        )
        lines = []
        for allocation in allocations:
            item = allocation.item
            if item.is_serial_tracked and allocation.serial_numbers:
                for serial in allocation.serial_numbers:
                    lines.append(self._line(item, Decimal("1"), serial))
            else:
                lines.append(self._line(item, allocation.quantity))
        return lines

    @staticmethod
    def _line(item: Item, expected, serial: Optional[str] = None,
              receipt_line_id: Optional[int] = None) -> StockCountItem:
        return StockCountItem(
            item_id=item.id,
            item_name=item.name,
            sku=item.sku,
            serial_number=serial,
            receipt_line_id=receipt_line_id,
            expected_quantity=expected,
            status=StockCountItemStatus.PENDING,
        )

    # ------------------------------------------------------------------
    # Counting
    # ------------------------------------------------------------------
    def start_count(self, count_id: int, ctx: EngineContext) -> StockCount:
        """pending|recount -> in_progress."""
        with atomic(self.db):
            count = self._get_count(count_id, lock=True)
            self._start(count, ctx)
        logger.info(f"Stock count {count.id} started by {ctx.actor_name}")
        return count

    def claim_count(self, count_id: int, ctx: EngineContext) -> StockCount:
        """Assign an unassigned pending count to the caller and start it."""
        if ctx.actor_id is None:
            raise ValidationError("Claiming a count requires an acting user", field="actor_id")
        with atomic(self.db):
            count = self._get_count(count_id, lock=True)
            if count.status != StockCountStatus.PENDING or count.assigned_to is not None:
                raise StateTransitionError(
                    "stock count", count.id, count.status.value, "claim",
                    message=f"Stock count {count.id} is no longer available to claim",
                )
            count.assigned_to = ctx.actor_id
            count.assigned_to_name = ctx.actor_name
            self._start(count, ctx)
        logger.info(f"Stock count {count.id} claimed by user {ctx.actor_id}")
        return count

    def record_count(
        self,
        count_id: int,
        line_id: int,
        counted_quantity,
        notes: Optional[str] = None,
    ) -> StockCountItem:
        """Record the physical quantity for one line and refresh aggregates.

        Raises:
            ValidationError: If the quantity is negative.
            StateTransitionError: If the count is not in progress.
            NotFoundError: If the line does not belong to the count.
        """
        counted_quantity = require_non_negative(counted_quantity, "counted_quantity")
        with atomic(self.db):
            count = self._get_count(count_id, lock=True)
            self._require_status(count, "record count for", StockCountStatus.IN_PROGRESS)
            line = self._record(count, line_id, counted_quantity, notes)
            self._apply_aggregates(count)
            self.db.flush()
        return line

    def record_counts(self, count_id: int, entries: List[LineCountInput]) -> StockCount:
        """Record several lines in one transaction."""
        quantities = [require_non_negative(e.counted_quantity, "counted_quantity") for e in entries]
        with atomic(self.db):
            count = self._get_count(count_id, lock=True)
            self._require_status(count, "record count for", StockCountStatus.IN_PROGRESS)
            for entry, quantity in zip(entries, quantities):
                self._record(count, entry.line_id, quantity, entry.notes)
            self._apply_aggregates(count)
            self.db.flush()
        return count

    def remove_line(self, count_id: int, line_id: int) -> StockCount:
        with atomic(self.db):
            count = self._get_count(count_id, lock=True)
            self._require_status(
                count, "remove a line from", StockCountStatus.PENDING, StockCountStatus.IN_PROGRESS
            )
            line = self._find_line(count, line_id)
            if len(count.items) == 1:
                raise ValidationError("Stock count must keep at least one line", field="line_id")
            count.items.remove(line)
            self.db.flush()
            self._apply_aggregates(count)
        logger.info(f"Removed line {line_id} from stock count {count_id}")
        return count

    def submit_count(self, count_id: int, ctx: EngineContext) -> StockCount:
        """in_progress -> submitted. Every line must have been counted."""
        with atomic(self.db):
            count = self._get_count(count_id, lock=True)
            self._require_status(count, "submit", StockCountStatus.IN_PROGRESS)
            uncounted = [line.id for line in count.items if line.counted_quantity is None]
            if uncounted:
                raise IncompleteCountError(count.id, uncounted)
            count.status = StockCountStatus.SUBMITTED
            count.submitted_at = datetime.now(timezone.utc)
            self._apply_aggregates(count)
        logger.info(
            f"Stock count {count.id} submitted: {count.matched_items}/{count.counted_items} matched"
        )
        return count

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------
    def approve_count(
        self, count_id: int, request: ApproveCountRequest, ctx: EngineContext
    ) -> StockCount:
        """submitted -> approved, writing every variance back into stock.

        Positive variance creates a new batch and allocates it at the
        count's bin; negative variance deducts FIFO as an adjustment and
        deallocates from the bin. Counts without a bin adjust the batch
        ledger only.

        Raises:
            ValidationError: If a mismatched line has no adjustment reason.
            InsufficientStockError / InsufficientStockAtBin: If a negative
                variance cannot be covered. The whole approval rolls back.
        """
        reasons = {
            int(line_id): reason.strip()
            for line_id, reason in (request.adjustment_reasons or {}).items()
            if reason and reason.strip()
        }

        with atomic(self.db):
            count = self._get_count(count_id, lock=True)
            self._require_status(count, "approve", StockCountStatus.SUBMITTED)

            mismatched = [line for line in count.items if line.status == StockCountItemStatus.MISMATCH]
            missing = [line.id for line in mismatched if line.id not in reasons]
            if missing:
                raise ValidationError(
                    f"Adjustment reason required for mismatched line(s): {missing}",
                    field="adjustment_reasons",
                    line_ids=missing,
                )

            ledger = BatchLedgerService(self.db, shortfall_policy="reject")
            bins = BinAllocationService(self.db)
            for line in mismatched:
                self._adjust_line(count, line, reasons[line.id], ledger, bins)

            count.status = StockCountStatus.APPROVED
            self._mark_reviewed(count, ctx, request.review_notes)
            self.db.flush()

        logger.info(
            f"Stock count {count.id} approved with {len(mismatched)} adjustment(s) by {ctx.actor_name}"
        )
        return count

    def _adjust_line(
        self,
        count: StockCount,
        line: StockCountItem,
        reason: str,
        ledger: BatchLedgerService,
        bins: BinAllocationService,
    ) -> None:
        variance = line.counted_quantity - line.expected_quantity
        serials = [line.serial_number] if line.serial_number and abs(variance) == 1 else None
        notes = f"Stock count {count.id}: {reason}"[:500]

        if variance > 0:
            ledger.apply_create_batch(
                CreateBatchRequest(
                    item_id=line.item_id,
                    quantity=variance,
                    source=BatchSource.STOCK_COUNT,
                    stock_count_id=count.id,
                    bin_id=count.bin_id,
                    notes=notes,
                )
            )
            if count.bin_id is not None:
                bins.apply_allocate(line.item_id, count.bin_id, variance, serials)
        elif variance < 0:
            ledger.apply_deduct(
                DeductRequest(
                    item_id=line.item_id,
                    quantity=-variance,
                    deduction_type=DeductionType.ADJUSTMENT,
                    origin=DocumentRef(ref_type="stock_count", ref_id=count.id),
                    bin_id=count.bin_id,
                    serial_numbers=serials,
                    notes=notes,
                )
            )
        line.adjustment_reason = reason

    def reject_count(
        self, count_id: int, ctx: EngineContext, review_notes: Optional[str] = None
    ) -> StockCount:
        """submitted -> rejected. No stock effect; lines go back to pending."""
        return self._send_back(count_id, ctx, review_notes, StockCountStatus.REJECTED, "reject")

    def request_recount(
        self, count_id: int, ctx: EngineContext, review_notes: Optional[str] = None
    ) -> StockCount:
        """submitted -> recount. Lines go back to pending; ``start_count`` re-opens it."""
        return self._send_back(count_id, ctx, review_notes, StockCountStatus.RECOUNT, "request recount for")

    def complete_count(self, count_id: int, ctx: EngineContext) -> StockCount:
        """approved -> completed."""
        with atomic(self.db):
            count = self._get_count(count_id, lock=True)
            self._require_status(count, "complete", StockCountStatus.APPROVED)
            count.status = StockCountStatus.COMPLETED
            count.closed_at = datetime.now(timezone.utc)
        logger.info(f"Stock count {count.id} completed")
        return count

    def _send_back(
        self,
        count_id: int,
        ctx: EngineContext,
        review_notes: Optional[str],
        new_status: StockCountStatus,
        action: str,
    ) -> StockCount:
        with atomic(self.db):
            count = self._get_count(count_id, lock=True)
            self._require_status(count, action, StockCountStatus.SUBMITTED)
            for line in count.items:
                line.counted_quantity = None
                line.variance = None
                line.counted_at = None
                line.status = StockCountItemStatus.PENDING
            count.status = new_status
            self._mark_reviewed(count, ctx, review_notes)
            self._apply_aggregates(count)
        logger.info(f"Stock count {count.id} sent back as {new_status.value}")
        return count

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_count(self, count_id: int) -> StockCount:
        return self._get_count(count_id)

    def list_counts(
        self,
        status: Optional[StockCountStatus] = None,
        assigned_to: Optional[int] = None,
        count_type: Optional[StockCountType] = None,
        location_id: Optional[int] = None,
    ) -> List[StockCount]:
        query = self.db.query(StockCount)
        if status:
            query = query.filter(StockCount.status == status)
        if assigned_to is not None:
            query = query.filter(StockCount.assigned_to == assigned_to)
        if count_type:
            query = query.filter(StockCount.count_type == count_type)
        if location_id is not None:
            query = query.filter(StockCount.location_id == location_id)
        return query.order_by(StockCount.created_at.desc(), StockCount.id.desc()).all()

    def available_counts(self, day: Optional[date] = None) -> List[StockCount]:
        """Auto-generated, unassigned pending counts due on ``day`` (default today)."""
        day = day or date.today()
        return (
            self.db.query(StockCount)
            .filter(
                StockCount.status == StockCountStatus.PENDING,
                StockCount.assigned_to.is_(None),
                StockCount.auto_generated.is_(True),
                StockCount.due_date == day,
            )
            .order_by(StockCount.id.asc())
            .all()
        )

    def get_stats(self) -> Dict[str, Any]:
        """Totals per status and the average accuracy of reviewed counts."""
        by_status = {status.value: 0 for status in StockCountStatus}
        rows = (
            self.db.query(StockCount.status, func.count(StockCount.id))
            .group_by(StockCount.status)
            .all()
        )
        for status, total in rows:
            by_status[status.value] = total

        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "average_accuracy": self._average_accuracy(),
        }

    def get_counter_stats(self, user_id: int) -> Dict[str, Any]:
        """Workload and accuracy for one counter."""
        counts = self.db.query(StockCount).filter(StockCount.assigned_to == user_id).all()
        open_statuses = (
            StockCountStatus.PENDING, StockCountStatus.IN_PROGRESS, StockCountStatus.RECOUNT,
        )
        done_statuses = (StockCountStatus.APPROVED, StockCountStatus.COMPLETED)
        return {
            "user_id": user_id,
            "total_assigned": len(counts),
            "open": sum(1 for c in counts if c.status in open_statuses),
            "awaiting_review": sum(1 for c in counts if c.status == StockCountStatus.SUBMITTED),
            "completed": sum(1 for c in counts if c.status in done_statuses),
            "average_accuracy": self._average_accuracy(StockCount.assigned_to == user_id),
        }

    def _average_accuracy(self, *criteria) -> Decimal:
        average = (
            self.db.query(func.avg(StockCount.accuracy_percentage))
            .filter(StockCount.status.in_(REVIEWED_STATUSES), StockCount.counted_items > 0, *criteria)
            .scalar()
        )
        if average is None:
            return Decimal("0.00")
        return Decimal(str(average)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _start(self, count: StockCount, ctx: EngineContext) -> None:
        self._require_status(count, "start", StockCountStatus.PENDING, StockCountStatus.RECOUNT)
        count.status = StockCountStatus.IN_PROGRESS
        count.started_at = datetime.now(timezone.utc)
        if count.assigned_to is None and ctx.actor_id is not None:
            count.assigned_to = ctx.actor_id
            count.assigned_to_name = ctx.actor_name

    def _record(
        self,
        count: StockCount,
        line_id: int,
        counted_quantity: Decimal,
        notes: Optional[str],
    ) -> StockCountItem:
        line = self._find_line(count, line_id)
        variance = counted_quantity - line.expected_quantity
        line.counted_quantity = counted_quantity
        line.variance = variance
        line.status = (
            StockCountItemStatus.COUNTED if variance == 0 else StockCountItemStatus.MISMATCH
        )
        line.counted_at = datetime.now(timezone.utc)
        if notes is not None:
            line.notes = notes
        return line

    def _apply_aggregates(self, count: StockCount) -> None:
        aggregates = compute_count_aggregates(count.items)
        count.total_items = aggregates.total_items
        count.counted_items = aggregates.counted_items
        count.matched_items = aggregates.matched_items
        count.mismatched_items = aggregates.mismatched_items
        count.accuracy_percentage = aggregates.accuracy_percentage

    def _mark_reviewed(self, count: StockCount, ctx: EngineContext, notes: Optional[str]) -> None:
        count.reviewed_at = datetime.now(timezone.utc)
        count.reviewed_by = ctx.actor_id
        count.reviewed_by_name = ctx.actor_name
        count.review_notes = notes

    @staticmethod
    def _require_status(count: StockCount, action: str, *allowed: StockCountStatus) -> None:
        if count.status in allowed:
            return
        message = None
        if count.is_terminal:
            message = f"Stock count {count.id} is closed as '{count.status.value}', cannot {action}"
        raise StateTransitionError("stock count", count.id, count.status.value, action, message=message)

    @staticmethod
    def _find_line(count: StockCount, line_id: int) -> StockCountItem:
        for line in count.items:
            if line.id == line_id:
                return line
        raise NotFoundError("Stock count line", line_id)

    def _get_item(self, item_id: int) -> Item:
        item = self.db.get(Item, item_id)
        if not item:
            raise NotFoundError("Item", item_id)
        return item

    def _get_count(self, count_id: int, lock: bool = False) -> StockCount:
        query = self.db.query(StockCount).filter(StockCount.id == count_id)
        if lock:
            query = query.with_for_update()
        count = query.first()
        if not count:
            raise NotFoundError("Stock count", count_id)
        return count
