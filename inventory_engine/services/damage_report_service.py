"""Damage Report Service.

``pending --approve--> approved`` writes the damaged quantity off: it is
deallocated at the reported bin and deducted from the batch ledger as an
adjustment, and ``stock_adjusted`` is set. ``pending --reject--> rejected``
has no stock effect.

Both decisions are terminal and idempotent. Repeating the same decision
is a no-op; reversing a decision is refused. The report row is locked
while the decision is checked so concurrent approvals write off once.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from inventory_engine.core.context import EngineContext
from inventory_engine.core.exceptions import NotFoundError, StateTransitionError, ValidationError
from inventory_engine.db.transaction import atomic
from inventory_engine.models.batch import DeductionType
from inventory_engine.models.damage_report import DamageReport, DamageReportStatus
from inventory_engine.models.item import Item
from inventory_engine.models.location import BinLocation
from inventory_engine.models.stock_count import StockCount
from inventory_engine.schemas.batch import DeductRequest
from inventory_engine.schemas.common import DocumentRef
from inventory_engine.schemas.damage_report import CreateDamageReportRequest
from inventory_engine.services.batch_ledger_service import BatchLedgerService
from inventory_engine.services.bin_allocation_service import BinAllocationService
from inventory_engine.services.validation import require_positive

logger = logging.getLogger(__name__)


class DamageReportService:
    """Records damaged stock and applies the write-off on approval."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, request: CreateDamageReportRequest, ctx: EngineContext) -> DamageReport:
        quantity = require_positive(request.quantity)
        if request.serial_number and quantity != 1:
            raise ValidationError(
                "A report for a single serial number must have quantity 1", field="quantity"
            )

        with atomic(self.db):
            item = self.db.get(Item, request.item_id)
            if not item:
                raise NotFoundError("Item", request.item_id)
            if request.bin_id is not None and not self.db.get(BinLocation, request.bin_id):
                raise NotFoundError("Bin", request.bin_id)
            if request.stock_count_id is not None and not self.db.get(StockCount, request.stock_count_id):
                raise NotFoundError("Stock count", request.stock_count_id)

            report = DamageReport(
                stock_count_id=request.stock_count_id,
                item_id=item.id,
                item_name=item.name,
                serial_number=request.serial_number,
                quantity=quantity,
                bin_id=request.bin_id,
                damage_type=request.damage_type,
                severity=request.severity,
                description=request.description,
                photo_reference=request.photo_reference,
                reported_by=ctx.actor_id,
                reported_by_name=ctx.actor_name,
                status=DamageReportStatus.PENDING,
                stock_adjusted=False,
            )
            self.db.add(report)
            self.db.flush()

        logger.info(f"Damage report {report.id} created for item {report.item_id} qty={quantity}")
        return report

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------
    def approve(self, report_id: int, ctx: EngineContext, notes: Optional[str] = None) -> DamageReport:
        """Approve a report and write the stock off.

        Raises:
            StateTransitionError: If the report was already rejected.
            InsufficientStockError / InsufficientStockAtBin: If the ledger or
                the bin cannot cover the damaged quantity. Nothing is written.
        """
        with atomic(self.db):
            report = self._get_report(report_id, lock=True)
            if report.status == DamageReportStatus.APPROVED:
                logger.warning(f"Damage report {report.id} already approved, ignoring repeat approval")
                return report
            if report.status != DamageReportStatus.PENDING:
                raise StateTransitionError("damage report", report.id, report.status.value, "approve")

            serials = [report.serial_number] if report.serial_number else None
            if report.bin_id is not None:
                BinAllocationService(self.db).apply_deallocate(
                    report.item_id, report.bin_id, report.quantity, serials
                )
            BatchLedgerService(self.db, shortfall_policy="reject").apply_deduct(
                DeductRequest(
                    item_id=report.item_id,
                    quantity=report.quantity,
                    deduction_type=DeductionType.ADJUSTMENT,
                    origin=DocumentRef(ref_type="damage_report", ref_id=report.id),
                    notes=f"Damage write-off: {report.damage_type}",
                )
            )

            report.status = DamageReportStatus.APPROVED
            report.stock_adjusted = True
            self._mark_reviewed(report, ctx, notes)
            self.db.flush()

        logger.info(f"Damage report {report.id} approved, {report.quantity} of item {report.item_id} written off")
        return report

    def reject(self, report_id: int, ctx: EngineContext, notes: Optional[str] = None) -> DamageReport:
        with atomic(self.db):
            report = self._get_report(report_id, lock=True)
            if report.status == DamageReportStatus.REJECTED:
                logger.warning(f"Damage report {report.id} already rejected, ignoring repeat rejection")
                return report
            if report.status != DamageReportStatus.PENDING:
                raise StateTransitionError("damage report", report.id, report.status.value, "reject")

            report.status = DamageReportStatus.REJECTED
            self._mark_reviewed(report, ctx, notes)
            self.db.flush()

        logger.info(f"Damage report {report.id} rejected")
        return report

    def clear_photo(self, report_id: int) -> DamageReport:
        """Drop the photo reference once it is no longer needed."""
        with atomic(self.db):
            report = self._get_report(report_id, lock=True)
            report.photo_reference = None
        return report

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_report(self, report_id: int) -> DamageReport:
        return self._get_report(report_id)

    def list_reports(
        self,
        status: Optional[DamageReportStatus] = None,
        item_id: Optional[int] = None,
        stock_count_id: Optional[int] = None,
    ) -> List[DamageReport]:
        query = self.db.query(DamageReport)
        if status:
            query = query.filter(DamageReport.status == status)
        if item_id is not None:
            query = query.filter(DamageReport.item_id == item_id)
        if stock_count_id is not None:
            query = query.filter(DamageReport.stock_count_id == stock_count_id)
        return query.order_by(DamageReport.created_at.desc(), DamageReport.id.desc()).all()

    def pending_count(self) -> int:
        return (
            self.db.query(DamageReport)
            .filter(DamageReport.status == DamageReportStatus.PENDING)
            .count()
        )

    def _mark_reviewed(self, report: DamageReport, ctx: EngineContext, notes: Optional[str]) -> None:
        report.reviewed_by = ctx.actor_id
        report.reviewed_by_name = ctx.actor_name
        report.reviewed_at = datetime.now(timezone.utc)
        report.review_notes = notes

    def _get_report(self, report_id: int, lock: bool = False) -> DamageReport:
        query = self.db.query(DamageReport).filter(DamageReport.id == report_id)
        if lock:
            query = query.with_for_update()
        report = query.first()
        if not report:
            raise NotFoundError("Damage report", report_id)
        return report
