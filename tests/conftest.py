"""Pytest configuration and fixtures."""

import os

# Must be set before the app is imported so the module-level engine is in-memory
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from decimal import Decimal
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from inventory_engine.core.context import EngineContext
from inventory_engine.db.base import Base
from inventory_engine.db.session import get_db
from inventory_engine.main import app
# Import all models to ensure they're registered with Base.metadata
from inventory_engine.models import *
from inventory_engine.models.documents import Receipt, ReceiptLine
from inventory_engine.models.item import Item, TrackingType
from inventory_engine.models.location import BinLocation, BinStatus, Location
from inventory_engine.schemas.batch import CreateBatchRequest
from inventory_engine.services.batch_ledger_service import BatchLedgerService

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Disable rate limiting during tests to avoid flaky failures
    from inventory_engine.core.rate_limit import limiter
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
def ctx() -> EngineContext:
    """Acting user for service calls."""
    return EngineContext(actor_id=7, actor_name="Dana Counter")


@pytest.fixture
def actor_headers() -> dict:
    return {"X-Actor-Id": "7", "X-Actor-Name": "Dana Counter"}


@pytest.fixture
def test_location(db_session: Session) -> Location:
    """Create a test location."""
    location = Location(name="Main Warehouse", code="WH1", active=True)
    db_session.add(location)
    db_session.commit()
    db_session.refresh(location)
    return location


@pytest.fixture
def other_location(db_session: Session) -> Location:
    location = Location(name="Store Front", code="ST1", active=True)
    db_session.add(location)
    db_session.commit()
    db_session.refresh(location)
    return location


@pytest.fixture
def bin_a(db_session: Session, test_location: Location) -> BinLocation:
    """Create a bin in the test location."""
    bin_location = BinLocation(bin_code="A-01", location_id=test_location.id, status=BinStatus.ACTIVE)
    db_session.add(bin_location)
    db_session.commit()
    db_session.refresh(bin_location)
    return bin_location


@pytest.fixture
def bin_b(db_session: Session, test_location: Location) -> BinLocation:
    bin_location = BinLocation(bin_code="B-02", location_id=test_location.id, status=BinStatus.ACTIVE)
    db_session.add(bin_location)
    db_session.commit()
    db_session.refresh(bin_location)
    return bin_location


@pytest.fixture
def inactive_bin(db_session: Session, test_location: Location) -> BinLocation:
    bin_location = BinLocation(bin_code="Z-99", location_id=test_location.id, status=BinStatus.INACTIVE)
    db_session.add(bin_location)
    db_session.commit()
    db_session.refresh(bin_location)
    return bin_location


@pytest.fixture
def test_item(db_session: Session) -> Item:
    """Create a quantity-tracked item."""
    item = Item(
        name="Linen Shirt",
        sku="SHIRT-LIN-M-BLU",
        colour="Blue",
        size="M",
        category="Shirts",
        tracking_type=TrackingType.NONE,
        current_stock=Decimal("0"),
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def serial_item(db_session: Session) -> Item:
    """Create a serial-tracked item."""
    item = Item(
        name="Espresso Machine",
        sku="ESP-100",
        category="Appliances",
        tracking_type=TrackingType.SERIAL,
        current_stock=Decimal("0"),
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def test_receipt(db_session: Session, test_location: Location, test_item: Item, bin_a: BinLocation) -> Receipt:
    """Receipt with a 10-unit line for test_item received into bin A-01."""
    receipt = Receipt(
        receipt_number="RCV-0001",
        vendor_name="Textile Supply Co",
        location_id=test_location.id,
    )
    receipt.lines = [
        ReceiptLine(item_id=test_item.id, quantity=Decimal("10"), bin_id=bin_a.id),
    ]
    db_session.add(receipt)
    db_session.commit()
    db_session.refresh(receipt)
    return receipt


@pytest.fixture
def make_batch(db_session: Session):
    """Factory creating a committed batch through the ledger."""
    def _make(item: Item, quantity, **kwargs):
        return BatchLedgerService(db_session).create_batch(
            CreateBatchRequest(item_id=item.id, quantity=Decimal(str(quantity)), **kwargs)
        )
    return _make
