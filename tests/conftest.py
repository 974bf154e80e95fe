"""
Shared test fixtures.

Service and API tests run against a file-backed SQLite database (via
aiosqlite) in the pytest temp dir, so no PostgreSQL or Redis is needed.
The production ``RideModel`` has no PostgreSQL-only columns and is used
as-is.
"""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ride_lifecycle.domain.entities import Ride
from ride_lifecycle.domain.enums import RideStatus
from ride_lifecycle.infrastructure.database import Base
from ride_lifecycle.infrastructure.models import RideModel  # noqa: F401
from ride_lifecycle.infrastructure.locks import LocalRideLocks
from ride_lifecycle.services.rides import RideService

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class TickingClock:
    """Deterministic clock; every call is one step later than the last."""

    def __init__(self, start: datetime = T0, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        self.current += self.step
        return self.current


# ── Domain fixtures ───────────────────────────────────────────────────


@pytest.fixture
def make_ride():
    """Build a ``Ride`` with sensible defaults; keyword args override."""

    def _make(**overrides) -> Ride:
        values = dict(
            id=1,
            member_id=7,
            scheduled_pickup_time=T0 + timedelta(hours=2),
            pickup_address={"address": "14 Oak Ave", "city": "Springfield"},
            dropoff_address={"address": "1200 Main St", "city": "Springfield"},
            status=RideStatus.PENDING,
            created_at=T0,
            updated_at=T0,
        )
        values.update(overrides)
        return Ride(**values)

    return _make


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


# ── Database fixtures ─────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables in a fresh SQLite file, yield a session factory, dispose."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'rides.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def service(session_factory, clock) -> RideService:
    return RideService(session_factory, LocalRideLocks(), clock=clock)


@pytest_asyncio.fixture
async def booked(service) -> Ride:
    """A pending ride scheduled two hours after ``T0``."""
    return await service.create_ride(
        member_id=7,
        scheduled_pickup_time=T0 + timedelta(hours=2),
        pickup_address={"address": "14 Oak Ave", "city": "Springfield"},
        dropoff_address={"address": "1200 Main St", "city": "Springfield"},
    )
