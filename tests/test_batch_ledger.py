"""Tests for the FIFO batch ledger."""

import logging
from decimal import Decimal

import pytest

from inventory_engine.core.exceptions import (
    InsufficientStockAtBin,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from inventory_engine.models.batch import Batch, BatchDeduction, BatchSource, BatchStatus, DeductionType
from inventory_engine.schemas.batch import CreateBatchRequest, DeductRequest
from inventory_engine.schemas.common import DocumentRef
from inventory_engine.services.batch_ledger_service import BatchLedgerService, DeductionOutcome
from inventory_engine.services.bin_allocation_service import BinAllocationService
from inventory_engine.services.validation import require_positive


def _deduct(db_session, item, quantity, policy=None, **kwargs):
    service = BatchLedgerService(db_session, shortfall_policy=policy)
    return service.deduct(DeductRequest(item_id=item.id, quantity=Decimal(str(quantity)), **kwargs))


class TestCreateBatch:
    def test_create_batch_adds_to_current_stock(self, db_session, test_item, make_batch):
        batch = make_batch(test_item, 12)

        assert batch.initial_quantity == Decimal("12")
        assert batch.remaining_quantity == Decimal("12")
        assert batch.status == BatchStatus.ACTIVE
        assert batch.source == BatchSource.MANUAL
        db_session.refresh(test_item)
        assert test_item.current_stock == Decimal("12")

    @pytest.mark.parametrize("quantity", ["0", "-3"])
    def test_create_batch_rejects_non_positive_quantity(self, db_session, test_item, quantity):
        with pytest.raises(ValidationError):
            BatchLedgerService(db_session).create_batch(
                CreateBatchRequest(item_id=test_item.id, quantity=Decimal(quantity))
            )
        assert db_session.query(Batch).count() == 0

    def test_create_batch_unknown_item(self, db_session):
        with pytest.raises(NotFoundError):
            BatchLedgerService(db_session).create_batch(
                CreateBatchRequest(item_id=999, quantity=Decimal("1"))
            )


class TestQuantityPrecision:
    def test_sub_cent_deduction_rejected(self, db_session, test_item, make_batch):
        batch = make_batch(test_item, 5)

        with pytest.raises(ValidationError) as exc_info:
            _deduct(db_session, test_item, "0.004")

        assert exc_info.value.context["field"] == "quantity"
        db_session.expire_all()
        assert db_session.get(Batch, batch.id).remaining_quantity == Decimal("5")
        assert db_session.query(BatchDeduction).count() == 0

    def test_sub_cent_batch_rejected(self, db_session, test_item):
        with pytest.raises(ValidationError):
            BatchLedgerService(db_session).create_batch(
                CreateBatchRequest(item_id=test_item.id, quantity=Decimal("2.125"))
            )
        assert db_session.query(Batch).count() == 0

    @pytest.mark.parametrize("raw", ["NaN", "Infinity", "-Infinity", "abc", "1.005"])
    def test_bad_quantities_raise_validation_error(self, raw):
        with pytest.raises(ValidationError):
            require_positive(raw)

    def test_trailing_zeros_accepted(self):
        assert require_positive("3.500") == Decimal("3.5")


class TestFifoDeduction:
    def test_oldest_batch_consumed_first(self, db_session, test_item, make_batch):
        """5 + 10 in stock, deduct 8: first batch depleted, second left with 7."""
        first = make_batch(test_item, 5)
        second = make_batch(test_item, 10)

        result = _deduct(
            db_session, test_item, 8,
            origin=DocumentRef(ref_type="sale", ref_id=42, ref_number="SO-42"),
        )

        assert result.outcome == DeductionOutcome.FULFILLED
        assert result.deducted == Decimal("8")
        assert result.shortfall == Decimal("0")

        db_session.refresh(first)
        db_session.refresh(second)
        assert first.remaining_quantity == Decimal("0")
        assert first.status == BatchStatus.DEPLETED
        assert second.remaining_quantity == Decimal("7")
        assert second.status == BatchStatus.ACTIVE

        deductions = db_session.query(BatchDeduction).order_by(BatchDeduction.id).all()
        assert [(d.batch_id, d.quantity) for d in deductions] == [
            (first.id, Decimal("5")),
            (second.id, Decimal("3")),
        ]
        assert sum(d.quantity for d in deductions) == Decimal("8")
        assert all(d.ref_number == "SO-42" and d.deduction_type == DeductionType.SALE for d in deductions)

    def test_deduction_logged_with_values(self, db_session, test_item, make_batch, caplog):
        make_batch(test_item, 5)
        make_batch(test_item, 10)
        caplog.set_level(logging.INFO, logger="inventory_engine")

        _deduct(db_session, test_item, 8)

        assert f"of item {test_item.id} (sale) across 2 batch(es)" in caplog.text

    def test_exact_quantity_depletes_single_batch(self, db_session, test_item, make_batch):
        batch = make_batch(test_item, 4)

        result = _deduct(db_session, test_item, 4)

        assert result.fulfilled
        db_session.refresh(batch)
        assert batch.status == BatchStatus.DEPLETED
        assert len(result.deductions) == 1

    def test_depleted_batches_are_skipped(self, db_session, test_item, make_batch):
        make_batch(test_item, 2)
        later = make_batch(test_item, 6)
        _deduct(db_session, test_item, 2)

        result = _deduct(db_session, test_item, 3)

        assert [d.batch_id for d in result.deductions] == [later.id]

    def test_conservation_of_stock(self, db_session, test_item, make_batch):
        batches = [make_batch(test_item, q) for q in (3, 7, 5)]
        _deduct(db_session, test_item, 4)
        _deduct(db_session, test_item, 6)

        for batch in batches:
            db_session.refresh(batch)
            deducted = sum(
                (d.quantity for d in batch.deductions), Decimal("0")
            )
            assert batch.initial_quantity == batch.remaining_quantity + deducted

        db_session.refresh(test_item)
        remaining = sum(b.remaining_quantity for b in batches)
        assert test_item.current_stock == remaining == Decimal("5")


class TestShortfallPolicy:
    def test_reject_policy_writes_nothing(self, db_session, test_item, make_batch):
        batch = make_batch(test_item, 3)

        with pytest.raises(InsufficientStockError) as exc_info:
            _deduct(db_session, test_item, 5, policy="reject")

        assert exc_info.value.requested == Decimal("5")
        assert exc_info.value.available == Decimal("3")
        db_session.refresh(batch)
        db_session.refresh(test_item)
        assert batch.remaining_quantity == Decimal("3")
        assert test_item.current_stock == Decimal("3")
        assert db_session.query(BatchDeduction).count() == 0

    def test_partial_policy_reports_shortfall(self, db_session, test_item, make_batch):
        batch = make_batch(test_item, 3)

        result = _deduct(db_session, test_item, 5, policy="partial")

        assert result.outcome == DeductionOutcome.PARTIAL
        assert result.deducted == Decimal("3")
        assert result.shortfall == Decimal("2")
        db_session.refresh(batch)
        assert batch.status == BatchStatus.DEPLETED
        db_session.refresh(test_item)
        assert test_item.current_stock == Decimal("0")

    def test_allow_partial_overrides_reject_policy(self, db_session, test_item, make_batch):
        make_batch(test_item, 1)

        result = _deduct(db_session, test_item, 2, policy="reject", allow_partial=True)

        assert result.outcome == DeductionOutcome.PARTIAL

    def test_no_batches_is_distinguishable(self, db_session, test_item):
        result = _deduct(db_session, test_item, 2, policy="partial")

        assert result.outcome == DeductionOutcome.NO_BATCHES
        assert result.deducted == Decimal("0")
        assert result.deductions == []

    def test_no_batches_rejected_under_reject_policy(self, db_session, test_item):
        with pytest.raises(InsufficientStockError):
            _deduct(db_session, test_item, 1, policy="reject")


class TestDeductionWithBin:
    def test_deduct_deallocates_from_bin(self, db_session, test_item, bin_a, make_batch):
        make_batch(test_item, 10, bin_id=bin_a.id)
        BinAllocationService(db_session).allocate(test_item.id, bin_a.id, Decimal("10"))

        _deduct(db_session, test_item, 4, bin_id=bin_a.id)

        assert BinAllocationService(db_session).on_hand(test_item.id, bin_a.id) == Decimal("6")

    def test_bin_shortage_rolls_back_ledger(self, db_session, test_item, bin_a, make_batch):
        batch = make_batch(test_item, 10)
        BinAllocationService(db_session).allocate(test_item.id, bin_a.id, Decimal("3"))

        with pytest.raises(InsufficientStockAtBin):
            _deduct(db_session, test_item, 5, bin_id=bin_a.id)

        db_session.refresh(batch)
        db_session.refresh(test_item)
        assert batch.remaining_quantity == Decimal("10")
        assert test_item.current_stock == Decimal("10")
        assert db_session.query(BatchDeduction).count() == 0
        assert BinAllocationService(db_session).on_hand(test_item.id, bin_a.id) == Decimal("3")


class TestLedgerReads:
    def test_get_batches_for_item_hides_empty_by_default(self, db_session, test_item, make_batch):
        make_batch(test_item, 2)
        make_batch(test_item, 5)
        _deduct(db_session, test_item, 2)

        service = BatchLedgerService(db_session)
        assert [b["remaining_quantity"] for b in service.get_batches_for_item(test_item.id)] == [Decimal("5")]
        assert len(service.get_batches_for_item(test_item.id, include_empty=True)) == 2

    def test_batch_deductions_resolve_transfer_number(
        self, db_session, test_item, test_location, other_location, make_batch
    ):
        from inventory_engine.models.documents import TransferOrder

        order = TransferOrder(
            transfer_number="TO-0009",
            source_location_id=test_location.id,
            destination_location_id=other_location.id,
        )
        db_session.add(order)
        db_session.commit()
        batch = make_batch(test_item, 5)

        _deduct(
            db_session, test_item, 2,
            deduction_type=DeductionType.TRANSFER,
            origin=DocumentRef(ref_type="transfer_order", ref_id=order.id),
        )

        rows = BatchLedgerService(db_session).get_batch_deductions(batch.id)
        assert len(rows) == 1
        assert rows[0]["ref_number"] == "TO-0009"
