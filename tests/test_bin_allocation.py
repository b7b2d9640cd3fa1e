"""Tests for bin allocation tracking."""

from decimal import Decimal

import pytest

from inventory_engine.core.exceptions import InsufficientStockAtBin, NotFoundError, ValidationError
from inventory_engine.models.bin_allocation import BinAllocation
from inventory_engine.services.bin_allocation_service import BinAllocationService


@pytest.fixture
def bins(db_session):
    return BinAllocationService(db_session)


class TestAllocate:
    def test_allocate_creates_then_accumulates(self, db_session, bins, test_item, bin_a):
        bins.allocate(test_item.id, bin_a.id, Decimal("4"))
        bins.allocate(test_item.id, bin_a.id, Decimal("6"))

        rows = db_session.query(BinAllocation).filter_by(item_id=test_item.id, bin_id=bin_a.id).all()
        assert len(rows) == 1
        assert rows[0].quantity == Decimal("10")

    def test_allocate_serials_kept_in_order(self, bins, serial_item, bin_a):
        bins.allocate(serial_item.id, bin_a.id, Decimal("2"), ["SN-1", "SN-2"])
        allocation = bins.allocate(serial_item.id, bin_a.id, Decimal("1"), ["SN-3"])

        assert allocation.serial_numbers == ["SN-1", "SN-2", "SN-3"]
        assert allocation.quantity == Decimal("3")

    def test_allocate_duplicate_serial_rejected(self, bins, serial_item, bin_a):
        bins.allocate(serial_item.id, bin_a.id, Decimal("1"), ["SN-1"])

        with pytest.raises(ValidationError):
            bins.allocate(serial_item.id, bin_a.id, Decimal("1"), ["SN-1"])
        assert bins.on_hand(serial_item.id, bin_a.id) == Decimal("1")

    def test_serial_count_must_match_quantity(self, bins, serial_item, bin_a):
        with pytest.raises(ValidationError):
            bins.allocate(serial_item.id, bin_a.id, Decimal("2"), ["SN-1"])

    def test_allocate_to_inactive_bin_rejected(self, bins, test_item, inactive_bin):
        with pytest.raises(ValidationError):
            bins.allocate(test_item.id, inactive_bin.id, Decimal("1"))

    def test_allocate_unknown_bin(self, bins, test_item):
        with pytest.raises(NotFoundError):
            bins.allocate(test_item.id, 404, Decimal("1"))

    def test_allocate_rejects_zero(self, bins, test_item, bin_a):
        with pytest.raises(ValidationError):
            bins.allocate(test_item.id, bin_a.id, Decimal("0"))


class TestDeallocate:
    def test_deallocate_reduces_quantity(self, bins, test_item, bin_a):
        bins.allocate(test_item.id, bin_a.id, Decimal("5"))

        allocation = bins.deallocate(test_item.id, bin_a.id, Decimal("2"))

        assert allocation.quantity == Decimal("3")

    def test_deallocate_more_than_on_hand(self, bins, test_item, bin_a):
        bins.allocate(test_item.id, bin_a.id, Decimal("2"))

        with pytest.raises(InsufficientStockAtBin) as exc_info:
            bins.deallocate(test_item.id, bin_a.id, Decimal("3"))

        assert exc_info.value.bin_id == bin_a.id
        assert exc_info.value.available == Decimal("2")
        assert bins.on_hand(test_item.id, bin_a.id) == Decimal("2")

    def test_deallocate_from_empty_bin(self, bins, test_item, bin_a):
        with pytest.raises(InsufficientStockAtBin):
            bins.deallocate(test_item.id, bin_a.id, Decimal("1"))

    def test_named_serials_removed(self, bins, serial_item, bin_a):
        bins.allocate(serial_item.id, bin_a.id, Decimal("3"), ["SN-1", "SN-2", "SN-3"])

        allocation = bins.deallocate(serial_item.id, bin_a.id, Decimal("1"), ["SN-2"])

        assert allocation.serial_numbers == ["SN-1", "SN-3"]

    def test_unnamed_deallocation_removes_oldest_serials(self, bins, serial_item, bin_a):
        bins.allocate(serial_item.id, bin_a.id, Decimal("3"), ["SN-1", "SN-2", "SN-3"])

        allocation = bins.deallocate(serial_item.id, bin_a.id, Decimal("2"))

        assert allocation.serial_numbers == ["SN-3"]
        assert allocation.quantity == Decimal("1")

    def test_serial_not_in_bin_rejected(self, bins, serial_item, bin_a):
        bins.allocate(serial_item.id, bin_a.id, Decimal("1"), ["SN-1"])

        with pytest.raises(ValidationError):
            bins.deallocate(serial_item.id, bin_a.id, Decimal("1"), ["SN-9"])


class TestQueries:
    def test_query_lists_bins_largest_first(self, bins, test_item, bin_a, bin_b):
        bins.allocate(test_item.id, bin_a.id, Decimal("2"))
        bins.allocate(test_item.id, bin_b.id, Decimal("8"))

        rows = bins.query(test_item.id)

        assert [(r["bin_code"], r["quantity"]) for r in rows] == [
            ("B-02", Decimal("8")),
            ("A-01", Decimal("2")),
        ]

    def test_empty_allocations_hidden(self, bins, test_item, bin_a):
        bins.allocate(test_item.id, bin_a.id, Decimal("2"))
        bins.deallocate(test_item.id, bin_a.id, Decimal("2"))

        assert bins.query(test_item.id) == []
        assert bins.get_bin_contents(bin_a.id) == []

    def test_largest_allocation_within_location(
        self, db_session, bins, test_item, bin_a, other_location
    ):
        from inventory_engine.models.location import BinLocation

        far_bin = BinLocation(bin_code="S-01", location_id=other_location.id)
        db_session.add(far_bin)
        db_session.commit()
        bins.allocate(test_item.id, bin_a.id, Decimal("2"))
        bins.allocate(test_item.id, far_bin.id, Decimal("9"))

        assert bins.largest_allocation(test_item.id).bin_id == far_bin.id
        assert bins.largest_allocation(test_item.id, bin_a.location_id).bin_id == bin_a.id
