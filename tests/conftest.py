"""
Shared test fixtures.

Uses a file-backed SQLite database (via aiosqlite) under ``tmp_path`` so
tests run without Docker / PostgreSQL / Redis.  The production tables,
partial unique indexes and version columns are created as-is; two
sessions opened on the same file behave like two concurrent requests.
"""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from wheelshare.domain.enums import VehicleType
from wheelshare.domain.value_objects import BatteryLevel, Location, utcnow
from wheelshare.domain.vehicle import Vehicle
from wheelshare.domain.wallet import PaymentMethod, User
from wheelshare.infrastructure import models  # noqa: F401
from wheelshare.infrastructure.database import metadata
from wheelshare.infrastructure.unit_of_work import (
    SqlAlchemyUnitOfWork,
    UnitOfWorkContext,
)

CASABLANCA = Location(33.5731, -7.5898)


# ── Builders ──────────────────────────────────────────────────────────


def make_user(name="Test Rider", email="rider@example.com", phone="+212600000000",
              wallet="50.00") -> User:
    user = User.register(name, email, phone)
    user.wallet_balance = Decimal(wallet)
    return user


def make_vehicle(code="ECO-0001", battery=90,
                 vehicle_type=VehicleType.SCOOTER) -> Vehicle:
    return Vehicle.create(code, vehicle_type, BatteryLevel.create(battery), CASABLANCA)


def make_card(user: User, last4="4242", card_type="Visa") -> PaymentMethod:
    return PaymentMethod.create(
        user.id, last4, card_type, 12, utcnow().year + 3, is_default=True
    )


def minutes_ago(minutes: int, seconds: int = 0):
    return utcnow() - timedelta(minutes=minutes, seconds=seconds)


# ── Database ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'wheelshare.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest_asyncio.fixture
async def uow(session_factory) -> AsyncGenerator[SqlAlchemyUnitOfWork, None]:
    async with UnitOfWorkContext(session_factory) as uow:
        yield uow


@dataclass
class World:
    """Ids of the rows every handler test starts from."""

    rider: User
    broke_rider: User
    other_rider: User
    scooter: Vehicle
    bike: Vehicle
    flat_scooter: Vehicle


@pytest_asyncio.fixture
async def world(session_factory) -> World:
    """Three riders (50, 10 and 80 MAD) and three vehicles, one with low battery."""
    world = World(
        rider=make_user(),
        broke_rider=make_user("Broke Rider", "broke@example.com", "+212600000001", "10.00"),
        other_rider=make_user("Other Rider", "other@example.com", "+212600000002", "80.00"),
        scooter=make_vehicle("ECO-0001"),
        bike=make_vehicle("ECO-0002", vehicle_type=VehicleType.BIKE),
        flat_scooter=make_vehicle("ECO-0003", battery=12),
    )
    async with UnitOfWorkContext(session_factory) as uow:
        for user in (world.rider, world.broke_rider, world.other_rider):
            uow.users.add(user)
        await uow.session.flush()
        for vehicle in (world.scooter, world.bike, world.flat_scooter):
            uow.vehicles.add(vehicle)
        await uow.commit()
    return world
