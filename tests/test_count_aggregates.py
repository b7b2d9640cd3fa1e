"""Tests for count aggregate derivation."""

from decimal import Decimal

from inventory_engine.models.stock_count import StockCountItem, StockCountItemStatus
from inventory_engine.services.stock_count_service import compute_count_aggregates


def _line(expected, counted=None):
    line = StockCountItem(item_id=1, item_name="x", expected_quantity=Decimal(str(expected)))
    if counted is None:
        line.status = StockCountItemStatus.PENDING
    else:
        line.counted_quantity = Decimal(str(counted))
        line.variance = line.counted_quantity - line.expected_quantity
        line.status = (
            StockCountItemStatus.COUNTED if line.variance == 0 else StockCountItemStatus.MISMATCH
        )
    return line


def test_nothing_counted():
    aggregates = compute_count_aggregates([_line(5), _line(2)])

    assert aggregates.total_items == 2
    assert aggregates.counted_items == 0
    assert aggregates.accuracy_percentage == Decimal("0.00")


def test_empty_count():
    aggregates = compute_count_aggregates([])

    assert aggregates.total_items == 0
    assert aggregates.accuracy_percentage == Decimal("0.00")


def test_mixed_lines():
    aggregates = compute_count_aggregates([_line(5, 5), _line(5, 4), _line(5, 5), _line(1)])

    assert aggregates.total_items == 4
    assert aggregates.counted_items == 3
    assert aggregates.matched_items == 2
    assert aggregates.mismatched_items == 1
    assert aggregates.accuracy_percentage == Decimal("66.67")


def test_counted_is_matched_plus_mismatched():
    lines = [_line(3, 3), _line(3, 0), _line(0, 2), _line(4, 4), _line(4)]

    aggregates = compute_count_aggregates(lines)

    assert aggregates.counted_items == aggregates.matched_items + aggregates.mismatched_items


def test_accuracy_rounds_half_up():
    # 1/8 = 12.5%, 5/8 = 62.5%; two-place quantize keeps these exact
    lines = [_line(1, 1)] + [_line(1, 0)] * 7
    assert compute_count_aggregates(lines).accuracy_percentage == Decimal("12.50")

    # 2/3 = 66.666... rounds up, 1/3 = 33.333... rounds down
    assert compute_count_aggregates([_line(1, 1), _line(1, 1), _line(1, 2)]).accuracy_percentage == Decimal("66.67")
    assert compute_count_aggregates([_line(1, 1), _line(1, 2), _line(1, 2)]).accuracy_percentage == Decimal("33.33")
