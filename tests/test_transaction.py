"""Tests for transaction boundaries, conflict translation and append-only deductions."""

from decimal import Decimal

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from inventory_engine.core.exceptions import ConcurrencyConflict
from inventory_engine.db.immutability import ImmutableRecordError
from inventory_engine.db.transaction import atomic, is_conflict_error, with_conflict_retry
from inventory_engine.models.batch import Batch, BatchDeduction
from inventory_engine.models.location import Location
from inventory_engine.schemas.batch import DeductRequest
from inventory_engine.services.batch_ledger_service import BatchLedgerService


class TestAtomic:
    def test_commits_on_success(self, db_session):
        with atomic(db_session):
            db_session.add(Location(name="Annex"))

        assert db_session.query(Location).filter_by(name="Annex").count() == 1

    def test_rolls_back_on_error(self, db_session):
        with pytest.raises(RuntimeError):
            with atomic(db_session):
                db_session.add(Location(name="Annex"))
                db_session.flush()
                raise RuntimeError("boom")

        assert db_session.query(Location).filter_by(name="Annex").count() == 0

    def test_version_mismatch_becomes_conflict(self, db_session, test_item, make_batch):
        batch = make_batch(test_item, 5)
        # Another writer bumps the version behind the session's back
        db_session.execute(text("UPDATE batches SET version = version + 1 WHERE id = :id"), {"id": batch.id})

        with pytest.raises(ConcurrencyConflict):
            with atomic(db_session):
                batch.notes = "late edit"
                db_session.flush()

        db_session.expire_all()
        assert db_session.get(Batch, batch.id).notes is None

    def test_lock_errors_recognized(self):
        locked = OperationalError("UPDATE batches", {}, Exception("database is locked"))
        other = OperationalError("SELECT 1", {}, Exception("no such table: batches"))

        assert is_conflict_error(locked)
        assert not is_conflict_error(other)


class TestConflictRetry:
    def test_retries_until_success(self):
        calls = []

        def operation():
            calls.append(1)
            if len(calls) < 3:
                raise ConcurrencyConflict("busy")
            return "done"

        assert with_conflict_retry(operation, attempts=3) == "done"
        assert len(calls) == 3

    def test_gives_up_after_attempts(self):
        calls = []

        def operation():
            calls.append(1)
            raise ConcurrencyConflict("busy")

        with pytest.raises(ConcurrencyConflict):
            with_conflict_retry(operation, attempts=2)
        assert len(calls) == 2

    def test_other_errors_not_retried(self):
        calls = []

        def operation():
            calls.append(1)
            raise ValueError("bad")

        with pytest.raises(ValueError):
            with_conflict_retry(operation, attempts=5)
        assert len(calls) == 1


class TestAppendOnlyDeductions:
    @pytest.fixture
    def deduction(self, db_session, test_item, make_batch):
        make_batch(test_item, 5)
        BatchLedgerService(db_session).deduct(DeductRequest(item_id=test_item.id, quantity=Decimal("2")))
        return db_session.query(BatchDeduction).one()

    def test_update_rejected(self, db_session, deduction):
        deduction.quantity = Decimal("1")

        with pytest.raises(ImmutableRecordError):
            db_session.flush()
        db_session.rollback()

        assert db_session.query(BatchDeduction).one().quantity == Decimal("2")

    def test_delete_rejected(self, db_session, deduction):
        db_session.delete(deduction)

        with pytest.raises(ImmutableRecordError):
            db_session.flush()
        db_session.rollback()

        assert db_session.query(BatchDeduction).count() == 1
