"""
Centralized Test Configuration.
"""

import os

# The application engine is built at import time; keep it off PostgreSQL
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from fleetflow.app.main import app
from fleetflow.app.db.session import get_db, Base
from fleetflow.app.core.clock import Clock, get_clock
from fleetflow.app.core.jwt import create_access_token
from fleetflow.app.models.enums import UserRole
from fleetflow.app.models.fleet_enums import VehicleType, DriverStatus
from fleetflow.app.schemas.vehicle import VehicleCreate
from fleetflow.app.schemas.driver import DriverCreate
from fleetflow.app.schemas.trip import TripCreate
from fleetflow.app.services.fleet_registry import VehicleService, DriverService
from fleetflow.app.services.trip_lifecycle import TripService

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Mid-morning, so "earlier today" and "later today" both stay on the same day
FROZEN_NOW = datetime(2025, 3, 10, 10, 0, 0)


class FrozenClock(Clock):
    """Clock pinned to a fixed instant; tests move it explicitly."""

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        """Enable foreign key constraints for SQLite."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture
def clock():
    return FrozenClock(FROZEN_NOW)


@pytest.fixture(autouse=True)
def apply_overrides(session_factory, clock):
    """Point the app at the per-test database and frozen clock."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    yield
    app.dependency_overrides = {}


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


def _auth_headers(user_id: int, username: str, role: UserRole) -> dict:
    token = create_access_token(data={"sub": username, "user_id": user_id, "role": role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def manager_headers():
    return _auth_headers(1, "manager", UserRole.FLEET_MANAGER)


@pytest.fixture
def dispatcher_headers():
    return _auth_headers(2, "dispatcher", UserRole.DISPATCHER)


@pytest.fixture
def safety_headers():
    return _auth_headers(3, "safety", UserRole.SAFETY_OFFICER)


@pytest.fixture
def analyst_headers():
    return _auth_headers(4, "analyst", UserRole.FINANCIAL_ANALYST)


# Factories

_plate_counter = iter(range(1, 1_000_000))


@pytest.fixture
def make_vehicle(db_session):
    async def _make(max_capacity: float = 5000.0, odometer: float = 1000.0, **overrides):
        n = next(_plate_counter)
        data = VehicleCreate(
            name=overrides.pop("name", f"Truck {n}"),
            license_plate=overrides.pop("license_plate", f"PLT-{n:05d}"),
            vehicle_type=overrides.pop("vehicle_type", VehicleType.TRUCK),
            max_capacity=max_capacity,
            odometer=odometer,
            **overrides
        )
        return await VehicleService.create(db_session, data)
    return _make


@pytest.fixture
def make_driver(db_session, clock):
    async def _make(status: DriverStatus = DriverStatus.ON_DUTY, license_expiry: datetime = None, **overrides):
        n = next(_plate_counter)
        data = DriverCreate(
            name=overrides.pop("name", f"Driver {n}"),
            license_number=overrides.pop("license_number", f"LIC-{n:05d}"),
            license_expiry=license_expiry or clock.now() + timedelta(days=365),
            category=overrides.pop("category", "HGV"),
            status=status,
            **overrides
        )
        return await DriverService.create(db_session, data)
    return _make


@pytest.fixture
def make_trip(db_session, clock):
    async def _make(vehicle, driver, cargo_weight: float = 1000.0, **overrides):
        data = TripCreate(
            vehicle_id=vehicle.id,
            driver_id=driver.id,
            cargo_weight=cargo_weight,
            **overrides
        )
        return await TripService.create(db_session, data, clock.now())
    return _make
