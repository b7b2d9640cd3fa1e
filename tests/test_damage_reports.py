"""Tests for damage reports and their stock write-off."""

from decimal import Decimal

import pytest

from inventory_engine.core.exceptions import (
    InsufficientStockError,
    StateTransitionError,
    ValidationError,
)
from inventory_engine.models.batch import BatchDeduction, DeductionType
from inventory_engine.models.damage_report import DamageReportStatus, DamageSeverity
from inventory_engine.schemas.damage_report import CreateDamageReportRequest
from inventory_engine.services.bin_allocation_service import BinAllocationService
from inventory_engine.services.damage_report_service import DamageReportService


@pytest.fixture
def stocked_item(db_session, test_item, bin_a, make_batch):
    make_batch(test_item, 10, bin_id=bin_a.id)
    BinAllocationService(db_session).allocate(test_item.id, bin_a.id, Decimal("10"))
    return test_item


def _report(db_session, item, ctx, quantity="2", **kwargs):
    return DamageReportService(db_session).create(
        CreateDamageReportRequest(
            item_id=item.id,
            quantity=Decimal(quantity),
            damage_type="water",
            severity=DamageSeverity.SEVERE,
            **kwargs,
        ),
        ctx,
    )


class TestDamageReports:
    def test_create_records_reporter(self, db_session, stocked_item, bin_a, ctx):
        report = _report(db_session, stocked_item, ctx, bin_id=bin_a.id, photo_reference="photos/1.jpg")

        assert report.status == DamageReportStatus.PENDING
        assert report.stock_adjusted is False
        assert report.reported_by == 7
        assert report.item_name == "Linen Shirt"
        assert DamageReportService(db_session).pending_count() == 1

    def test_serial_report_must_be_single_unit(self, db_session, stocked_item, ctx):
        with pytest.raises(ValidationError):
            _report(db_session, stocked_item, ctx, quantity="2", serial_number="SN-1")

    def test_approve_writes_stock_off(self, db_session, stocked_item, bin_a, ctx):
        report = _report(db_session, stocked_item, ctx, bin_id=bin_a.id)

        approved = DamageReportService(db_session).approve(report.id, ctx, notes="confirmed")

        assert approved.status == DamageReportStatus.APPROVED
        assert approved.stock_adjusted is True
        assert approved.reviewed_by_name == "Dana Counter"
        db_session.refresh(stocked_item)
        assert stocked_item.current_stock == Decimal("8")
        assert BinAllocationService(db_session).on_hand(stocked_item.id, bin_a.id) == Decimal("8")

        deduction = db_session.query(BatchDeduction).one()
        assert deduction.deduction_type == DeductionType.ADJUSTMENT
        assert deduction.ref_type == "damage_report"
        assert deduction.ref_id == report.id

    def test_double_approve_deducts_once(self, db_session, stocked_item, bin_a, ctx):
        service = DamageReportService(db_session)
        report = _report(db_session, stocked_item, ctx, bin_id=bin_a.id)

        service.approve(report.id, ctx)
        service.approve(report.id, ctx)

        assert db_session.query(BatchDeduction).count() == 1
        db_session.refresh(stocked_item)
        assert stocked_item.current_stock == Decimal("8")

    def test_reject_has_no_stock_effect(self, db_session, stocked_item, bin_a, ctx):
        service = DamageReportService(db_session)
        report = _report(db_session, stocked_item, ctx, bin_id=bin_a.id)

        rejected = service.reject(report.id, ctx)

        assert rejected.status == DamageReportStatus.REJECTED
        assert rejected.stock_adjusted is False
        assert db_session.query(BatchDeduction).count() == 0

    def test_decisions_cannot_be_reversed(self, db_session, stocked_item, ctx):
        service = DamageReportService(db_session)
        rejected = _report(db_session, stocked_item, ctx)
        approved = _report(db_session, stocked_item, ctx)
        service.reject(rejected.id, ctx)
        service.approve(approved.id, ctx)

        with pytest.raises(StateTransitionError):
            service.approve(rejected.id, ctx)
        with pytest.raises(StateTransitionError):
            service.reject(approved.id, ctx)

    def test_approve_without_stock_rolls_back(self, db_session, test_item, ctx):
        service = DamageReportService(db_session)
        report = _report(db_session, test_item, ctx, quantity="1")

        with pytest.raises(InsufficientStockError):
            service.approve(report.id, ctx)

        report = service.get_report(report.id)
        assert report.status == DamageReportStatus.PENDING
        assert report.stock_adjusted is False

    def test_clear_photo(self, db_session, stocked_item, ctx):
        report = _report(db_session, stocked_item, ctx, photo_reference="photos/2.jpg")

        cleared = DamageReportService(db_session).clear_photo(report.id)

        assert cleared.photo_reference is None
