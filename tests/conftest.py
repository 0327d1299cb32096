"""
Shared test fixtures.

Each test gets its own SQLite file database (via aiosqlite) so tests run
without Docker / PostgreSQL / Redis.  Transactions open with
``BEGIN IMMEDIATE``: concurrent sessions queue on the write lock the way
concurrent PostgreSQL transactions queue on row locks, which is what the
acceptance race tests rely on.
"""

import itertools
from datetime import timedelta
from typing import AsyncGenerator, Iterable, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from movenow.domain.clock import utc_now
from movenow.domain.enums import (
    BookingStatus,
    DriverAvailability,
    LoadType,
    UserRole,
    VehicleType,
)
from movenow.infrastructure.database import Base
from movenow.infrastructure.models import (
    BookingModel,
    DriverModel,
    UserModel,
    VehicleModel,
)

# Nairobi CBD and Kilimani, about 4.3 km apart
CBD = (-1.2833, 36.8233)
KILIMANI = (-1.2921, 36.7856)


# ── Test DB (SQLite file per test) ────────────────────────────────────


@pytest_asyncio.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'movenow.db'}", echo=False
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def deferred_session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """
    Sessions on SQLite's default deferred transactions.

    Reads take no lock, so a second session can commit between one
    session's check and its write.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'deferred.db'}", echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ── Data builders ─────────────────────────────────────────────────────


class Factory:
    """Inserts users, drivers, vehicles and bookings with sane defaults."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._seq = itertools.count(1)

    async def customer(self, **overrides) -> UserModel:
        n = next(self._seq)
        user = UserModel(
            first_name="Test",
            last_name=f"Customer{n}",
            email=f"customer{n}@example.com",
            role=UserRole.CUSTOMER,
            **overrides,
        )
        self.session.add(user)
        await self.session.flush()
        return user

    async def driver(
        self,
        *,
        approved: bool = True,
        availability: DriverAvailability = DriverAvailability.AVAILABLE,
        vehicle_types: Iterable[VehicleType] = (VehicleType.SMALL_TRUCK,),
        location: Optional[tuple[float, float]] = None,
        inactive_vehicle_types: Iterable[VehicleType] = (),
    ) -> DriverModel:
        n = next(self._seq)
        user = UserModel(
            first_name="Test",
            last_name=f"Driver{n}",
            email=f"driver{n}@example.com",
            role=UserRole.DRIVER,
        )
        self.session.add(user)
        await self.session.flush()

        driver = DriverModel(
            user_id=user.id,
            license_number=f"DL-{n:05d}",
            is_approved=approved,
            availability_status=availability,
            current_location_lat=location[0] if location else None,
            current_location_lng=location[1] if location else None,
        )
        self.session.add(driver)
        await self.session.flush()

        for active, types in ((True, vehicle_types), (False, inactive_vehicle_types)):
            for vehicle_type in types:
                m = next(self._seq)
                self.session.add(
                    VehicleModel(
                        driver_id=driver.id,
                        vehicle_type=vehicle_type,
                        make="Isuzu",
                        model="NKR",
                        license_plate=f"KDA {m:03d}X",
                        is_active=active,
                    )
                )
        await self.session.flush()
        return driver

    async def booking(
        self,
        customer_id: int,
        *,
        pickup: tuple[float, float] = CBD,
        dropoff: tuple[float, float] = KILIMANI,
        vehicle_type: VehicleType = VehicleType.SMALL_TRUCK,
        status: BookingStatus = BookingStatus.PENDING,
        pickup_in: timedelta = timedelta(days=1),
        total_price: int = 1500,
        pickup_address: str = "Moi Avenue, Nairobi CBD",
        dropoff_address: str = "Argwings Kodhek Rd, Kilimani",
        **overrides,
    ) -> BookingModel:
        n = next(self._seq)
        booking = BookingModel(
            booking_number=f"MN{n:010d}",
            customer_id=customer_id,
            pickup_address=pickup_address,
            pickup_lat=pickup[0],
            pickup_lng=pickup[1],
            pickup_date=utc_now() + pickup_in,
            pickup_time="10:00",
            dropoff_address=dropoff_address,
            dropoff_lat=dropoff[0],
            dropoff_lng=dropoff[1],
            load_type=LoadType.BOXES,
            vehicle_type_required=vehicle_type,
            estimated_distance=4.3,
            estimated_duration=30,
            base_price=800,
            distance_price=301,
            time_price=240,
            total_price=total_price,
            status=status,
            **overrides,
        )
        self.session.add(booking)
        await self.session.flush()
        return booking


@pytest.fixture
def factory(db_session) -> Factory:
    return Factory(db_session)


# ── Redis stand-in ────────────────────────────────────────────────────


def fake_redis() -> AsyncMock:
    """AsyncMock Redis backed by a dict: GET, SET (NX/EX) and the release script."""
    data: dict[str, str] = {}
    client = AsyncMock()

    def _get(key):
        return data.get(key)

    def _set(key, value, nx=False, ex=None):
        if nx and key in data:
            return None
        data[key] = value
        return True

    def _eval(script, numkeys, key, token):
        if data.get(key) == token:
            del data[key]
            return 1
        return 0

    client.get.side_effect = _get
    client.set.side_effect = _set
    client.eval.side_effect = _eval
    client.data = data
    return client
