"""Shared test fixtures for all test modules."""

import contextlib
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import condoledger.models  # noqa: F401
from condoledger.core import database as db_module
from condoledger.core.database import Base, get_db
from condoledger.main import app
from condoledger.schemas.building import BuildingCreate, UnitCreate
from condoledger.services.directory_service import DirectoryService
from condoledger.services.invoice_ledger import InvoiceLedger

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)

ADMIN = "admin@torre-norte.test"
RESIDENT = "resident-3b@torre-norte.test"


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database.
    """
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def db_session():
    """Create a database session for direct service testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def building(db_session):
    return DirectoryService(db_session).create_building(
        BuildingCreate(name="Residencias Torre Norte", address="Av. Libertador 120, Caracas"),
        ADMIN,
    )


@pytest.fixture
def unit(db_session, building):
    return DirectoryService(db_session).create_unit(
        building.id, UnitCreate(name="3B", floor="3", aliquot=Decimal("2.5")), ADMIN
    )


@pytest.fixture
def other_unit(db_session, building):
    return DirectoryService(db_session).create_unit(
        building.id, UnitCreate(name="4A", floor="4"), ADMIN
    )


@pytest.fixture
def load_debt(db_session):
    """Factory creating an invoice through the ledger."""

    def _load(unit, period: str, amount: str, description: str = ""):
        return InvoiceLedger(db_session).create_invoice(
            unit_id=unit.id,
            amount=Decimal(amount),
            period=period,
            description=description or f"Condominio {period}",
            acting_user=ADMIN,
        )

    return _load
