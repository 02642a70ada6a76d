"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PROVISION_DEFAULT_TABLES", "false")
os.environ.setdefault("REDIS_URL", "")

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from restaurant_pos.core.rbac import TokenData, UserRole
from restaurant_pos.core.security import create_access_token, get_password_hash
from restaurant_pos.db.base import Base
from restaurant_pos.db.session import enable_sqlite_foreign_keys, get_db
from restaurant_pos.main import app
# Import all models to ensure they're registered with Base.metadata
from restaurant_pos.models import *
from restaurant_pos.models.menu import MenuItem
from restaurant_pos.models.table import RestaurantTable, TableStatus
from restaurant_pos.models.user import User
from restaurant_pos.repositories.sql import (
    SqlInventoryRepository,
    SqlMenuItemRepository,
    SqlOrderRepository,
    SqlReservationRepository,
    SqlTableRepository,
    SqlUnitOfWork,
)
from restaurant_pos.services import InventoryService, OrderService, ReservationService, TableService

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# Restaurant clock for engine tests: 2026-06-01 12:00 UTC
NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


class RecordingNotifier:
    """Notifier that keeps every published event for assertions."""

    def __init__(self):
        self.events = []

    def publish(self, event, entity, actor, audiences):
        self.events.append({"event": event, "entity": entity, "actor": actor, "audiences": tuple(audiences)})

    @property
    def names(self):
        return [e["event"] for e in self.events]

    def clear(self):
        self.events.clear()


class FixedClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
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
    # Disable rate limiters during tests to avoid flaky failures
    from restaurant_pos.core.rate_limit import limiter
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    limiter.enabled = True
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------

def _make_user(db_session: Session, name: str, email: str, role: UserRole) -> User:
    user = User(
        name=name,
        email=email,
        password_hash=get_password_hash("testpass123"),
        role=role,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_user(db_session: Session) -> User:
    return _make_user(db_session, "Ada Admin", "admin@example.com", UserRole.ADMIN)


@pytest.fixture
def manager_user(db_session: Session) -> User:
    return _make_user(db_session, "Mona Manager", "manager@example.com", UserRole.MANAGER)


@pytest.fixture
def cashier_user(db_session: Session) -> User:
    return _make_user(db_session, "Cal Cashier", "cashier@example.com", UserRole.CASHIER)


@pytest.fixture
def other_cashier_user(db_session: Session) -> User:
    return _make_user(db_session, "Cleo Cashier", "cashier2@example.com", UserRole.CASHIER)


@pytest.fixture
def kitchen_user(db_session: Session) -> User:
    return _make_user(db_session, "Ken Kitchen", "kitchen@example.com", UserRole.KITCHEN)


def principal(user: User) -> TokenData:
    """The acting principal engines expect for a user."""
    return TokenData(user_id=user.id, email=user.email, role=user.role, name=user.name)


def token_for(user: User) -> str:
    return create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": user.role.value, "name": user.name}
    )


def headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}


@pytest.fixture
def admin(admin_user):
    return principal(admin_user)


@pytest.fixture
def manager(manager_user):
    return principal(manager_user)


@pytest.fixture
def cashier(cashier_user):
    return principal(cashier_user)


@pytest.fixture
def other_cashier(other_cashier_user):
    return principal(other_cashier_user)


@pytest.fixture
def kitchen(kitchen_user):
    return principal(kitchen_user)


@pytest.fixture
def admin_headers(admin_user) -> dict:
    return headers_for(admin_user)


@pytest.fixture
def manager_headers(manager_user) -> dict:
    return headers_for(manager_user)


@pytest.fixture
def cashier_headers(cashier_user) -> dict:
    return headers_for(cashier_user)


@pytest.fixture
def kitchen_headers(kitchen_user) -> dict:
    return headers_for(kitchen_user)


@pytest.fixture
def other_cashier_headers(other_cashier_user) -> dict:
    return headers_for(other_cashier_user)


# ---------------------------------------------------------------------------
# Floor and menu
# ---------------------------------------------------------------------------

@pytest.fixture
def tables(db_session: Session) -> dict:
    """T1 (2 seats), T2 (4 seats) and T3 (6 seats), all available."""
    created = {}
    for number, capacity in (("T1", 2), ("T2", 4), ("T3", 6)):
        table = RestaurantTable(
            table_number=number, capacity=capacity, status=TableStatus.AVAILABLE, features=[],
        )
        db_session.add(table)
        created[number] = table
    db_session.commit()
    for table in created.values():
        db_session.refresh(table)
    return created


@pytest.fixture
def menu(db_session: Session) -> dict:
    """A burger at 8.50, fries at 3.00 and a switched-off special."""
    items = {
        "burger": MenuItem(name="Burger", price=Decimal("8.50"), category="Mains"),
        "fries": MenuItem(name="Fries", price=Decimal("3.00"), category="Sides"),
        "special": MenuItem(name="Chef Special", price=Decimal("19.00"), category="Mains", available=False),
    }
    db_session.add_all(items.values())
    db_session.commit()
    for item in items.values():
        db_session.refresh(item)
    return items


# ---------------------------------------------------------------------------
# Engines
# ---------------------------------------------------------------------------

@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def table_engine(db_session, notifier, clock) -> TableService:
    return TableService(
        tables=SqlTableRepository(db_session),
        reservations=SqlReservationRepository(db_session),
        uow=SqlUnitOfWork(db_session),
        notifier=notifier,
        clock=clock,
    )


@pytest.fixture
def reservation_engine(db_session, table_engine, notifier, clock) -> ReservationService:
    return ReservationService(
        reservations=SqlReservationRepository(db_session),
        table_engine=table_engine,
        uow=SqlUnitOfWork(db_session),
        notifier=notifier,
        clock=clock,
    )


@pytest.fixture
def order_engine(db_session, table_engine, notifier, clock) -> OrderService:
    return OrderService(
        orders=SqlOrderRepository(db_session),
        menu_items=SqlMenuItemRepository(db_session),
        table_engine=table_engine,
        uow=SqlUnitOfWork(db_session),
        notifier=notifier,
        clock=clock,
        tax_rate=0.08,
    )


@pytest.fixture
def inventory_ledger(db_session, notifier, clock) -> InventoryService:
    return InventoryService(
        items=SqlInventoryRepository(db_session),
        uow=SqlUnitOfWork(db_session),
        notifier=notifier,
        clock=clock,
    )
