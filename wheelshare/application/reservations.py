"""
Reservation handlers
====================

Each handler works inside one ``SqlAlchemyUnitOfWork`` and commits at most
once.  Expected business outcomes come back as ``Result`` values; only
infrastructure faults propagate as exceptions.

Stale holds
-----------
A reservation whose ``expires_at`` has passed but whose row is still
ACTIVE keeps occupying the partial unique indexes until something flips it
to EXPIRED.  ``create_reservation`` expires any such row it trips over in
the same unit, and ``expire_reservations`` sweeps the rest periodically.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Optional

from wheelshare.application.dtos import ReservationView
from wheelshare.domain.enums import ReservationStatus, VehicleStatus
from wheelshare.domain.errors import DomainError, Result
from wheelshare.domain.reservation import Reservation, ReservationErrors
from wheelshare.domain.value_objects import utcnow
from wheelshare.domain.wallet import UserErrors
from wheelshare.infrastructure.unit_of_work import (
    ConcurrencyConflict,
    SqlAlchemyUnitOfWork,
)

logger = logging.getLogger(__name__)

_USER_INDEX_HINTS = ("uq_reservations_active_user", "reservations.user_id")


async def _expire(
    uow: SqlAlchemyUnitOfWork, reservation: Reservation, now: datetime
) -> None:
    reservation.mark_as_expired(now)
    vehicle = await uow.vehicles.get_by_id(reservation.vehicle_id)
    if vehicle is not None and vehicle.status == VehicleStatus.RESERVED:
        vehicle.release_reservation()
    logger.info(
        "Reservation %s expired (vehicle %s released)",
        reservation.id, reservation.vehicle_id,
    )


async def create_reservation(
    uow: SqlAlchemyUnitOfWork,
    user_id: uuid.UUID,
    vehicle_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> Result[ReservationView]:
    now = now or utcnow()
    if await uow.users.get_by_id(user_id) is None:
        return Result.fail(UserErrors.NOT_FOUND)

    try:
        existing = await uow.reservations.get_active_by_user(user_id)
        if existing is not None:
            if not existing.has_expired(now):
                return Result.fail(ReservationErrors.USER_ALREADY_HAS_RESERVATION)
            await _expire(uow, existing, now)

        held = await uow.reservations.get_active_by_vehicle(vehicle_id)
        if held is not None and held.status == ReservationStatus.ACTIVE:
            if held.is_active(now):
                return Result.fail(ReservationErrors.VEHICLE_ALREADY_RESERVED)
            await _expire(uow, held, now)

        vehicle = await uow.vehicles.get_by_id(vehicle_id)
        if vehicle is None:
            return Result.fail(ReservationErrors.VEHICLE_NOT_FOUND)

        vehicle.reserve()
        reservation = Reservation.create(user_id, vehicle_id, now)
        uow.reservations.add(reservation)
    except DomainError as exc:
        return Result.fail(exc.error)

    try:
        await uow.commit()
    except ConcurrencyConflict as conflict:
        if conflict.involves(*_USER_INDEX_HINTS):
            return Result.fail(ReservationErrors.USER_ALREADY_HAS_RESERVATION)
        return Result.fail(ReservationErrors.VEHICLE_ALREADY_RESERVED)

    logger.info(
        "Reservation %s created: user %s holds vehicle %s until %s",
        reservation.id, user_id, vehicle.code, reservation.expires_at,
    )
    return Result.ok(ReservationView.of(reservation, vehicle, now))


async def cancel_reservation(
    uow: SqlAlchemyUnitOfWork,
    reservation_id: uuid.UUID,
    user_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> Result[ReservationView]:
    now = now or utcnow()
    reservation = await uow.reservations.get_by_id(reservation_id)
    if reservation is None:
        return Result.fail(ReservationErrors.NOT_FOUND)
    if reservation.user_id != user_id:
        return Result.fail(ReservationErrors.UNAUTHORIZED)

    vehicle = await uow.vehicles.get_by_id(reservation.vehicle_id)
    try:
        reservation.cancel(now)
        if vehicle is not None and vehicle.status == VehicleStatus.RESERVED:
            vehicle.release_reservation()
    except DomainError as exc:
        return Result.fail(exc.error)

    try:
        await uow.commit()
    except ConcurrencyConflict:
        return Result.fail(ReservationErrors.not_active("cancel"))

    logger.info("Reservation %s cancelled by user %s", reservation_id, user_id)
    return Result.ok(ReservationView.of(reservation, vehicle, now))


async def expire_reservations(
    uow: SqlAlchemyUnitOfWork, now: Optional[datetime] = None
) -> Result[int]:
    """Flip every overdue ACTIVE reservation to EXPIRED.  Returns the count."""
    now = now or utcnow()
    overdue = await uow.reservations.list_expired(now)
    if not overdue:
        return Result.ok(0)

    try:
        for reservation in overdue:
            await _expire(uow, reservation, now)
    except DomainError as exc:
        return Result.fail(exc.error)

    try:
        await uow.commit()
    except ConcurrencyConflict:
        logger.warning("Reservation sweep lost a write race")
        return Result.fail(ReservationErrors.SWEEP_CONFLICT)

    logger.info("Expired %d stale reservations", len(overdue))
    return Result.ok(len(overdue))


async def get_active_reservation(
    uow: SqlAlchemyUnitOfWork,
    user_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> Result[ReservationView]:
    now = now or utcnow()
    reservation = await uow.reservations.get_active_by_user(user_id)
    if reservation is None or not reservation.is_active(now):
        return Result.fail(ReservationErrors.NOT_FOUND)
    vehicle = await uow.vehicles.get_by_id(reservation.vehicle_id)
    return Result.ok(ReservationView.of(reservation, vehicle, now))
