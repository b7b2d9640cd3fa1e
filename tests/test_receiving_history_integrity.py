"""Tests for receiving, movement history and the stock integrity check."""

from decimal import Decimal

import pytest

from inventory_engine.core.exceptions import NotFoundError, StateTransitionError
from inventory_engine.models.batch import Batch, BatchSource
from inventory_engine.models.tasks import PlacementTask
from inventory_engine.schemas.batch import DeductRequest
from inventory_engine.schemas.damage_report import CreateDamageReportRequest
from inventory_engine.schemas.tasks import CreateTransferTaskRequest
from inventory_engine.services.batch_ledger_service import BatchLedgerService
from inventory_engine.services.damage_report_service import DamageReportService
from inventory_engine.services.movement_history_service import MovementHistoryService
from inventory_engine.services.placement_task_service import PlacementTaskService
from inventory_engine.services.receiving_service import ReceivingService
from inventory_engine.services.stock_integrity_service import StockIntegrityService
from inventory_engine.services.transfer_task_service import TransferTaskService


class TestReceiving:
    def test_receipt_creates_batches_and_tasks(self, db_session, test_receipt, test_item):
        result = ReceivingService(db_session).receive_receipt(test_receipt.id)

        assert result["receipt_number"] == "RCV-0001"
        assert len(result["batch_ids"]) == 1
        assert len(result["placement_task_ids"]) == 1
        batch = db_session.get(Batch, result["batch_ids"][0])
        assert batch.source == BatchSource.RECEIPT
        assert batch.receipt_line_id == test_receipt.lines[0].id
        db_session.refresh(test_item)
        assert test_item.current_stock == Decimal("10")

    def test_receipt_received_once(self, db_session, test_receipt):
        service = ReceivingService(db_session)
        service.receive_receipt(test_receipt.id)

        with pytest.raises(StateTransitionError):
            service.receive_receipt(test_receipt.id)
        assert db_session.query(Batch).count() == 1
        assert db_session.query(PlacementTask).count() == 1

    def test_unknown_receipt(self, db_session):
        with pytest.raises(NotFoundError):
            ReceivingService(db_session).receive_receipt(77)


class TestMovementHistory:
    def test_feed_is_newest_first(self, db_session, test_receipt, test_item, bin_a, bin_b, ctx):
        task_id = ReceivingService(db_session).receive_receipt(test_receipt.id)["placement_task_ids"][0]
        PlacementTaskService(db_session).place_item(task_id, bin_a.id, ctx)

        transfers = TransferTaskService(db_session)
        move = transfers.create(
            CreateTransferTaskRequest(
                item_id=test_item.id, quantity=Decimal("3"),
                source_bin_id=bin_a.id, destination_bin_id=bin_b.id,
            )
        )
        transfers.begin(move.id, ctx)
        transfers.complete(move.id, ctx)

        damage = DamageReportService(db_session)
        report = damage.create(
            CreateDamageReportRequest(item_id=test_item.id, quantity=Decimal("1"), bin_id=bin_b.id, damage_type="crushed"),
            ctx,
        )
        damage.approve(report.id, ctx)

        events = MovementHistoryService(db_session).history(item_id=test_item.id)

        assert [e["type"] for e in events] == ["damage", "transfer", "placement"]
        assert events[1]["from_bin"] == "A-01"
        assert events[1]["to_bin"] == "B-02"
        assert events[0]["from_bin"] == "B-02"

    def test_limit(self, db_session, test_item, bin_a, ctx):
        from inventory_engine.schemas.tasks import CreatePlacementTaskRequest

        service = PlacementTaskService(db_session)
        for _ in range(3):
            task = service.create(CreatePlacementTaskRequest(item_id=test_item.id, quantity=Decimal("1")))
            service.place_item(task.id, bin_a.id, ctx)

        assert len(MovementHistoryService(db_session).history(limit=2)) == 2


class TestStockIntegrity:
    def test_consistent_after_receive_and_place(self, db_session, test_receipt, test_item, bin_a, ctx):
        task_id = ReceivingService(db_session).receive_receipt(test_receipt.id)["placement_task_ids"][0]
        integrity = StockIntegrityService(db_session)

        pending = integrity.check_item(test_item.id)
        assert pending["pending_placement"] == Decimal("10")
        assert pending["bins_consistent"] is True

        PlacementTaskService(db_session).place_item(task_id, bin_a.id, ctx)
        BatchLedgerService(db_session).deduct(
            DeductRequest(item_id=test_item.id, quantity=Decimal("4"), bin_id=bin_a.id)
        )

        result = integrity.check_item(test_item.id)
        assert result["current_stock"] == Decimal("6")
        assert result["batch_total"] == Decimal("6")
        assert result["bin_total"] == Decimal("6")
        assert result["ledger_consistent"] is True
        assert result["bins_consistent"] is True

    def test_detects_bin_drift(self, db_session, test_item, make_batch):
        make_batch(test_item, 5)

        result = StockIntegrityService(db_session).check_item(test_item.id)

        assert result["ledger_consistent"] is True
        assert result["bins_consistent"] is False
