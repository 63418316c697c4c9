"""
Concurrency safety tests.

Demonstrates:
1. Two riders racing for the same vehicle: exactly one reservation wins.
2. One rider racing for two vehicles: the per-user index rejects the second.
3. One rider scanning the same QR code twice: exactly one trip starts.
4. A write based on a stale vehicle version is refused.
5. Distributed lock prevents simultaneous sweeps.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from wheelshare.application.reservations import create_reservation
from wheelshare.application.trips import start_trip
from wheelshare.domain.enums import ReservationStatus, TripStatus, VehicleStatus
from wheelshare.domain.errors import Result
from wheelshare.domain.reservation import Reservation, ReservationErrors
from wheelshare.domain.trip import ActiveTrip
from wheelshare.domain.value_objects import Location, utcnow
from wheelshare.infrastructure.locks import DistributedLock, LockNotAcquired
from wheelshare.infrastructure.unit_of_work import (
    ConcurrencyConflict,
    UnitOfWorkContext,
)
from wheelshare.workers.sweeper import run_sweep_cycle


class Rendezvous:
    """Holds every party at ``wait()`` until all of them have arrived."""

    def __init__(self, parties: int):
        self.parties = parties
        self.arrived = 0
        self.event = asyncio.Event()

    async def wait(self) -> None:
        self.arrived += 1
        if self.arrived >= self.parties:
            self.event.set()
        await asyncio.wait_for(self.event.wait(), timeout=5)


async def contend(session_factory, gate, handler, *args):
    """Run ``handler`` but park before the commit until every racer is ready."""
    async with UnitOfWorkContext(session_factory) as uow:
        real_commit = uow.commit

        async def commit():
            await gate.wait()
            await real_commit()

        uow.commit = commit
        return await handler(uow, *args)


async def active_reservations(session_factory, **criteria) -> int:
    async with session_factory() as session:
        stmt = select(func.count()).select_from(Reservation).where(
            Reservation.status == ReservationStatus.ACTIVE,
            *(getattr(Reservation, k) == v for k, v in criteria.items()),
        )
        return (await session.execute(stmt)).scalar()


async def active_trips(session_factory, **criteria) -> int:
    async with session_factory() as session:
        stmt = select(func.count()).select_from(ActiveTrip).where(
            ActiveTrip.status == TripStatus.ACTIVE,
            *(getattr(ActiveTrip, k) == v for k, v in criteria.items()),
        )
        return (await session.execute(stmt)).scalar()


class TestReservationRaces:
    @pytest.mark.asyncio
    async def test_two_riders_one_vehicle(self, session_factory, world):
        gate = Rendezvous(2)
        results = await asyncio.gather(
            contend(session_factory, gate, create_reservation, world.rider.id, world.scooter.id),
            contend(session_factory, gate, create_reservation, world.other_rider.id, world.scooter.id),
        )

        winners = [r for r in results if r.is_success]
        losers = [r for r in results if r.is_failure]
        assert len(winners) == 1
        assert [r.error.code for r in losers] == ["Reservation.VehicleAlreadyReserved"]
        assert await active_reservations(session_factory, vehicle_id=world.scooter.id) == 1

        async with UnitOfWorkContext(session_factory) as uow:
            vehicle = await uow.vehicles.get_by_id(world.scooter.id)
        assert vehicle.status == VehicleStatus.RESERVED

    @pytest.mark.asyncio
    async def test_one_rider_two_vehicles(self, session_factory, world):
        gate = Rendezvous(2)
        results = await asyncio.gather(
            contend(session_factory, gate, create_reservation, world.rider.id, world.scooter.id),
            contend(session_factory, gate, create_reservation, world.rider.id, world.bike.id),
        )

        codes = sorted(r.error.code for r in results if r.is_failure)
        assert codes == ["Reservation.UserAlreadyHasReservation"]
        assert await active_reservations(session_factory, user_id=world.rider.id) == 1

        async with UnitOfWorkContext(session_factory) as uow:
            statuses = {
                (await uow.vehicles.get_by_id(world.scooter.id)).status,
                (await uow.vehicles.get_by_id(world.bike.id)).status,
            }
        assert statuses == {VehicleStatus.RESERVED, VehicleStatus.AVAILABLE}


class TestTripStartRace:
    @pytest.mark.asyncio
    async def test_double_scan_starts_one_trip(self, session_factory, world):
        async with UnitOfWorkContext(session_factory) as uow:
            reserved = await create_reservation(uow, world.rider.id, world.scooter.id)
        assert reserved.is_success

        gate = Rendezvous(2)
        results = await asyncio.gather(
            *(
                contend(session_factory, gate, start_trip,
                        world.rider.id, "ECO-0001", 33.5731, -7.5898)
                for _ in range(2)
            )
        )

        winners = [r for r in results if r.is_success]
        losers = [r for r in results if r.is_failure]
        assert len(winners) == 1
        assert [r.error.code for r in losers] == ["Trip.VehicleAlreadyInUse"]
        assert await active_trips(session_factory, vehicle_id=world.scooter.id) == 1

        async with UnitOfWorkContext(session_factory) as uow:
            vehicle = await uow.vehicles.get_by_id(world.scooter.id)
            reservation = await uow.reservations.get_by_id(reserved.value.id)
        assert vehicle.status == VehicleStatus.IN_USE
        assert reservation.status == ReservationStatus.CONVERTED


class TestUnitOfWorkContext:
    @pytest.mark.asyncio
    async def test_loaded_objects_stay_readable_after_exit(self, session_factory, world):
        async with UnitOfWorkContext(session_factory) as uow:
            vehicle = await uow.vehicles.get_by_id(world.scooter.id)

        assert vehicle.code == "ECO-0001"
        assert vehicle.status == VehicleStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_uncommitted_changes_are_discarded(self, session_factory, world):
        async with UnitOfWorkContext(session_factory) as uow:
            vehicle = await uow.vehicles.get_by_id(world.scooter.id)
            vehicle.reserve()
            await uow.session.flush()

        async with UnitOfWorkContext(session_factory) as uow:
            stored = await uow.vehicles.get_by_id(world.scooter.id)
        assert stored.status == VehicleStatus.AVAILABLE


class TestOptimisticVersioning:
    @pytest.mark.asyncio
    async def test_stale_vehicle_write_is_refused(self, session_factory, world):
        async with UnitOfWorkContext(session_factory) as slow, \
                UnitOfWorkContext(session_factory) as fast:
            stale = await slow.vehicles.get_by_id(world.scooter.id)
            fresh = await fast.vehicles.get_by_id(world.scooter.id)

            fresh.reserve()
            await fast.commit()

            stale.update_location(Location(33.6, -7.6))
            with pytest.raises(ConcurrencyConflict):
                await slow.commit()

        async with UnitOfWorkContext(session_factory) as uow:
            vehicle = await uow.vehicles.get_by_id(world.scooter.id)
        assert vehicle.status == VehicleStatus.RESERVED
        assert vehicle.latitude == world.scooter.latitude

    def test_conflict_matches_on_constraint_or_detail(self):
        named = ConcurrencyConflict("duplicate key", "uq_reservations_active_user")
        sqlite = ConcurrencyConflict("UNIQUE constraint failed: reservations.user_id")

        assert named.involves("uq_reservations_active_user")
        assert sqlite.involves("uq_reservations_active_user", "reservations.user_id")
        assert not sqlite.involves("reservations.vehicle_id")


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_uses_set_nx_with_ttl(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "reservation_sweeper", ttl_seconds=10)
        assert await lock.acquire() is True
        mock_redis.set.assert_awaited_once_with(
            "wheelshare:lock:reservation_sweeper", lock.token, nx=True, ex=10
        )

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=None)

        lock = DistributedLock(mock_redis, "reservation_sweeper")
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_release_only_deletes_own_token(self):
        mock_redis = AsyncMock()
        mock_redis.eval = AsyncMock(return_value=0)

        lock = DistributedLock(mock_redis, "reservation_sweeper")
        assert await lock.release() is False
        args = mock_redis.eval.await_args.args
        assert args[1:] == (1, lock.key, lock.token)

    @pytest.mark.asyncio
    async def test_context_manager_acquire_fail_raises(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "reservation_sweeper")
        with pytest.raises(LockNotAcquired):
            async with lock:
                pass
        mock_redis.eval.assert_not_awaited()


class TestSweepCycle:
    @pytest.mark.asyncio
    async def test_skips_when_another_worker_holds_the_lock(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)
        uow_context = AsyncMock()

        with patch("wheelshare.workers.sweeper.get_redis", AsyncMock(return_value=mock_redis)):
            assert await run_sweep_cycle(uow_context) == 0

        uow_context.assert_not_called()
        mock_redis.eval.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expires_overdue_holds_and_releases_lock(self, session_factory, world):
        async with UnitOfWorkContext(session_factory) as uow:
            await create_reservation(
                uow, world.rider.id, world.scooter.id, now=utcnow() - timedelta(minutes=6)
            )
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        with patch("wheelshare.workers.sweeper.get_redis", AsyncMock(return_value=mock_redis)):
            expired = await run_sweep_cycle(lambda: UnitOfWorkContext(session_factory))

        assert expired == 1
        mock_redis.eval.assert_awaited_once()
        async with UnitOfWorkContext(session_factory) as uow:
            vehicle = await uow.vehicles.get_by_id(world.scooter.id)
        assert vehicle.status == VehicleStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_lost_race_is_retried_next_cycle(self, session_factory):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        with patch("wheelshare.workers.sweeper.get_redis", AsyncMock(return_value=mock_redis)), \
                patch(
                    "wheelshare.workers.sweeper.expire_reservations",
                    AsyncMock(return_value=Result.fail(ReservationErrors.SWEEP_CONFLICT)),
                ):
            expired = await run_sweep_cycle(lambda: UnitOfWorkContext(session_factory))

        assert expired == 0
        mock_redis.eval.assert_awaited_once()
