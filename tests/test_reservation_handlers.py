"""Reservation handlers against a real (SQLite) unit of work."""

from __future__ import annotations

import uuid
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from wheelshare.application.reservations import (
    cancel_reservation,
    create_reservation,
    expire_reservations,
    get_active_reservation,
)
from wheelshare.domain.enums import ReservationStatus, VehicleStatus
from wheelshare.domain.value_objects import utcnow
from wheelshare.infrastructure.unit_of_work import (
    ConcurrencyConflict,
    UnitOfWorkContext,
)


async def reserve(session_factory, user_id, vehicle_id, now=None):
    async with UnitOfWorkContext(session_factory) as uow:
        return await create_reservation(uow, user_id, vehicle_id, now=now)


async def vehicle_status(session_factory, vehicle_id):
    async with UnitOfWorkContext(session_factory) as uow:
        return (await uow.vehicles.get_by_id(vehicle_id)).status


async def reservation_status(session_factory, reservation_id):
    async with UnitOfWorkContext(session_factory) as uow:
        return (await uow.reservations.get_by_id(reservation_id)).status


class TestCreateReservation:
    @pytest.mark.asyncio
    async def test_reserves_vehicle(self, session_factory, world):
        result = await reserve(session_factory, world.rider.id, world.scooter.id)

        assert result.is_success
        view = result.value
        assert view.status == ReservationStatus.ACTIVE
        assert view.vehicle_code == "ECO-0001"
        assert view.remaining_seconds == 300
        assert await vehicle_status(session_factory, world.scooter.id) == VehicleStatus.RESERVED

    @pytest.mark.asyncio
    async def test_user_may_hold_only_one_vehicle(self, session_factory, world):
        await reserve(session_factory, world.rider.id, world.scooter.id)
        result = await reserve(session_factory, world.rider.id, world.bike.id)

        assert result.error.code == "Reservation.UserAlreadyHasReservation"
        assert await vehicle_status(session_factory, world.bike.id) == VehicleStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_vehicle_may_be_held_only_once(self, session_factory, world):
        await reserve(session_factory, world.rider.id, world.scooter.id)
        result = await reserve(session_factory, world.other_rider.id, world.scooter.id)

        assert result.error.code == "Reservation.VehicleAlreadyReserved"

    @pytest.mark.asyncio
    async def test_unknown_vehicle(self, session_factory, world):
        result = await reserve(session_factory, world.rider.id, uuid.uuid4())
        assert result.error.code == "Reservation.VehicleNotFound"

    @pytest.mark.asyncio
    async def test_unknown_user(self, session_factory, world):
        result = await reserve(session_factory, uuid.uuid4(), world.scooter.id)
        assert result.error.code == "User.NotFound"
        assert await vehicle_status(session_factory, world.scooter.id) == VehicleStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_low_battery_vehicle_not_reservable(self, session_factory, world):
        result = await reserve(session_factory, world.rider.id, world.flat_scooter.id)
        assert result.error.code == "Vehicle.NotAvailable"

    @pytest.mark.asyncio
    async def test_stale_hold_is_expired_and_replaced(self, session_factory, world):
        long_ago = utcnow() - timedelta(minutes=10)
        old = await reserve(session_factory, world.rider.id, world.scooter.id, now=long_ago)

        result = await reserve(session_factory, world.other_rider.id, world.scooter.id)

        assert result.is_success
        assert await reservation_status(session_factory, old.value.id) == ReservationStatus.EXPIRED
        assert await vehicle_status(session_factory, world.scooter.id) == VehicleStatus.RESERVED

    @pytest.mark.asyncio
    async def test_own_stale_hold_does_not_block_a_new_one(self, session_factory, world):
        long_ago = utcnow() - timedelta(minutes=10)
        old = await reserve(session_factory, world.rider.id, world.scooter.id, now=long_ago)

        result = await reserve(session_factory, world.rider.id, world.bike.id)

        assert result.is_success
        assert await reservation_status(session_factory, old.value.id) == ReservationStatus.EXPIRED
        assert await vehicle_status(session_factory, world.scooter.id) == VehicleStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_own_stale_hold_on_the_same_vehicle_is_renewed(self, session_factory, world):
        long_ago = utcnow() - timedelta(minutes=10)
        old = await reserve(session_factory, world.rider.id, world.scooter.id, now=long_ago)

        result = await reserve(session_factory, world.rider.id, world.scooter.id)

        assert result.is_success, result.error
        assert result.value.id != old.value.id
        assert await reservation_status(session_factory, old.value.id) == ReservationStatus.EXPIRED
        assert await reservation_status(session_factory, result.value.id) == ReservationStatus.ACTIVE
        assert await vehicle_status(session_factory, world.scooter.id) == VehicleStatus.RESERVED


class TestCancelReservation:
    @pytest.mark.asyncio
    async def test_cancel_releases_vehicle(self, session_factory, world):
        created = await reserve(session_factory, world.rider.id, world.scooter.id)

        async with UnitOfWorkContext(session_factory) as uow:
            result = await cancel_reservation(uow, created.value.id, world.rider.id)

        assert result.value.status == ReservationStatus.CANCELLED
        assert await vehicle_status(session_factory, world.scooter.id) == VehicleStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_only_owner_may_cancel(self, session_factory, world):
        created = await reserve(session_factory, world.rider.id, world.scooter.id)

        async with UnitOfWorkContext(session_factory) as uow:
            result = await cancel_reservation(uow, created.value.id, world.other_rider.id)

        assert result.error.code == "Reservation.Unauthorized"
        assert await reservation_status(session_factory, created.value.id) == ReservationStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_unknown_reservation(self, uow, world):
        result = await cancel_reservation(uow, uuid.uuid4(), world.rider.id)
        assert result.error.code == "Reservation.NotFound"

    @pytest.mark.asyncio
    async def test_cancel_twice(self, session_factory, world):
        created = await reserve(session_factory, world.rider.id, world.scooter.id)
        async with UnitOfWorkContext(session_factory) as uow:
            await cancel_reservation(uow, created.value.id, world.rider.id)

        async with UnitOfWorkContext(session_factory) as uow:
            result = await cancel_reservation(uow, created.value.id, world.rider.id)

        assert result.error.code == "Reservation.NotActive"


class TestExpiryAndQueries:
    @pytest.mark.asyncio
    async def test_sweep_expires_only_overdue_holds(self, session_factory, world):
        long_ago = utcnow() - timedelta(minutes=6)
        stale = await reserve(session_factory, world.rider.id, world.scooter.id, now=long_ago)
        fresh = await reserve(session_factory, world.other_rider.id, world.bike.id)

        async with UnitOfWorkContext(session_factory) as uow:
            result = await expire_reservations(uow)

        assert result.value == 1
        assert await reservation_status(session_factory, stale.value.id) == ReservationStatus.EXPIRED
        assert await reservation_status(session_factory, fresh.value.id) == ReservationStatus.ACTIVE
        assert await vehicle_status(session_factory, world.scooter.id) == VehicleStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_sweep_with_nothing_to_do(self, uow, world):
        result = await expire_reservations(uow)
        assert result.value == 0

    @pytest.mark.asyncio
    async def test_sweep_losing_a_write_race_reports_conflict(self, session_factory, world):
        long_ago = utcnow() - timedelta(minutes=6)
        stale = await reserve(session_factory, world.rider.id, world.scooter.id, now=long_ago)

        async with UnitOfWorkContext(session_factory) as uow:
            uow.commit = AsyncMock(side_effect=ConcurrencyConflict("version mismatch"))
            result = await expire_reservations(uow)

        assert result.error.code == "Reservation.SweepConflict"
        assert await reservation_status(session_factory, stale.value.id) == ReservationStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_active_reservation_countdown(self, session_factory, world):
        t0 = utcnow()
        await reserve(session_factory, world.rider.id, world.scooter.id, now=t0)

        async with UnitOfWorkContext(session_factory) as uow:
            result = await get_active_reservation(
                uow, world.rider.id, now=t0 + timedelta(seconds=61)
            )

        assert result.value.remaining_seconds == 239

    @pytest.mark.asyncio
    async def test_expired_hold_is_not_reported_active(self, session_factory, world):
        long_ago = utcnow() - timedelta(minutes=6)
        await reserve(session_factory, world.rider.id, world.scooter.id, now=long_ago)

        async with UnitOfWorkContext(session_factory) as uow:
            result = await get_active_reservation(uow, world.rider.id)

        assert result.error.code == "Reservation.NotFound"
