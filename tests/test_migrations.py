"""Tests for the Alembic schema migration."""

import importlib.util
from pathlib import Path

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError

from inventory_engine.db.base import Base
import inventory_engine.models  # noqa: F401

MIGRATION = Path(__file__).resolve().parent.parent / "alembic" / "versions" / "001_inventory_engine_schema.py"


def _load_migration():
    spec = importlib.util.spec_from_file_location("inventory_engine_schema_001", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def migrated_engine():
    engine = create_engine("sqlite:///:memory:")
    migration = _load_migration()
    with engine.begin() as connection:
        with Operations.context(MigrationContext.configure(connection)):
            migration.upgrade()
    yield engine, migration
    engine.dispose()


def test_upgrade_creates_every_model_table(migrated_engine):
    engine, _ = migrated_engine

    tables = set(inspect(engine).get_table_names())

    assert tables == set(Base.metadata.tables)


def test_upgrade_matches_model_columns(migrated_engine):
    engine, _ = migrated_engine
    inspector = inspect(engine)

    for name, table in Base.metadata.tables.items():
        migrated = {column["name"] for column in inspector.get_columns(name)}
        assert migrated == set(table.columns.keys()), name


def test_batch_quantity_constraints_enforced(migrated_engine):
    engine, _ = migrated_engine
    with engine.begin() as connection:
        connection.execute(text("INSERT INTO items (id, name, tracking_type, current_stock) VALUES (1, 'x', 'NONE', 0)"))

    with pytest.raises(IntegrityError):
        with engine.begin() as connection:
            connection.execute(
                text(
                    "INSERT INTO batches (item_id, initial_quantity, remaining_quantity, status, source) "
                    "VALUES (1, 5, 6, 'ACTIVE', 'MANUAL')"
                )
            )


def test_downgrade_drops_everything(migrated_engine):
    engine, migration = migrated_engine

    with engine.begin() as connection:
        with Operations.context(MigrationContext.configure(connection)):
            migration.downgrade()

    assert inspect(engine).get_table_names() == []
