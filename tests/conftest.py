"""
Shared test fixtures.

Uses a throw-away SQLite database file per test (via aiosqlite) so tests
run without Docker / PostgreSQL / Redis.  The production models are
portable (plain float coordinates, string-backed enums), so the schema
is created straight from ``Base.metadata``.  A file rather than
``:memory:`` lets concurrent sessions see each other's commits.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ridehail.domain.enums import DriverStatus, RideStatus
from ridehail.infrastructure.database import Base, build_engine, build_session_factory
from ridehail.infrastructure.models import DriverModel, RideModel, UserModel

# Connaught Place, New Delhi
PICKUP_LAT, PICKUP_LNG = 28.6315, 77.2167


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create tables in a fresh database file, dispose afterwards."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest.fixture
def seed(session_factory):
    """Persist ORM objects and return them (ids populated)."""

    async def _seed(*models):
        async with session_factory() as session:
            session.add_all(models)
            await session.commit()
        return models if len(models) > 1 else models[0]

    return _seed


@pytest.fixture
def make_user():
    def _make(**overrides) -> UserModel:
        values = {
            "name": "Aarav Sharma",
            "email": "aarav@example.com",
            "fcm_token": None,
            "default_payment_method": "card",
        }
        values.update(overrides)
        return UserModel(**values)

    return _make


@pytest.fixture
def make_driver():
    def _make(lat=PICKUP_LAT, lng=PICKUP_LNG, **overrides) -> DriverModel:
        values = {
            "name": "Ramesh Yadav",
            "phone": "+91-98100-00001",
            "status": DriverStatus.ACTIVE,
            "is_available": True,
            "current_lat": lat,
            "current_lng": lng,
            "rating": 4.5,
        }
        values.update(overrides)
        return DriverModel(**values)

    return _make


@pytest.fixture
def make_ride():
    def _make(passenger_id: int, **overrides) -> RideModel:
        values = {
            "passenger_id": passenger_id,
            "passenger_name": "Aarav Sharma",
            "passenger_lat": PICKUP_LAT,
            "passenger_lng": PICKUP_LNG,
            "status": RideStatus.REQUESTED,
        }
        values.update(overrides)
        return RideModel(**values)

    return _make
