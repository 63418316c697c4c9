"""
Reservation aggregate: a five minute hold on one vehicle for one user.

Expiry is a computed predicate over ``expires_at``; nothing moves a
reservation to EXPIRED on its own.  ``mark_as_expired`` is the explicit
sweep primitive invoked by the expiry handler.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from .enums import RESERVATION_TRANSITIONS, ReservationStatus
from .errors import DomainError, Error
from .value_objects import utcnow


class ReservationErrors:
    INVALID_USER_ID = Error("Reservation.InvalidUserId", "User ID cannot be empty")
    INVALID_VEHICLE_ID = Error(
        "Reservation.InvalidVehicleId", "Vehicle ID cannot be empty"
    )
    NOT_FOUND = Error("Reservation.NotFound", "Reservation not found")
    UNAUTHORIZED = Error(
        "Reservation.Unauthorized", "You cannot cancel another user's reservation"
    )
    VEHICLE_NOT_FOUND = Error("Reservation.VehicleNotFound", "Vehicle not found")
    USER_ALREADY_HAS_RESERVATION = Error(
        "Reservation.UserAlreadyHasReservation",
        "You already have an active reservation. Please cancel it first or wait for it to expire.",
    )
    VEHICLE_ALREADY_RESERVED = Error(
        "Reservation.VehicleAlreadyReserved",
        "This vehicle is already reserved by another user.",
    )
    ALREADY_EXPIRED = Error(
        "Reservation.AlreadyExpired", "Cannot cancel an expired reservation"
    )
    NOT_YET_EXPIRED = Error(
        "Reservation.NotYetExpired",
        "Cannot expire a reservation that hasn't reached expiry time",
    )
    EXPIRED = Error("Reservation.Expired", "Cannot convert an expired reservation")
    SWEEP_CONFLICT = Error(
        "Reservation.SweepConflict",
        "Another request changed these reservations; retry the sweep",
    )

    @staticmethod
    def not_active(action: str) -> Error:
        return Error(
            "Reservation.NotActive",
            f"Cannot {action} a reservation that is not active",
        )


def _is_blank(value: Optional[uuid.UUID]) -> bool:
    return value is None or value.int == 0


@dataclass(eq=False)
class Reservation:
    user_id: uuid.UUID
    vehicle_id: uuid.UUID
    created_at: datetime
    expires_at: datetime
    status: ReservationStatus = ReservationStatus.ACTIVE
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    cancelled_at: Optional[datetime] = None
    converted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    DURATION_SECONDS = 300

    @classmethod
    def create(
        cls,
        user_id: uuid.UUID,
        vehicle_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> "Reservation":
        if _is_blank(user_id):
            raise DomainError(ReservationErrors.INVALID_USER_ID)
        if _is_blank(vehicle_id):
            raise DomainError(ReservationErrors.INVALID_VEHICLE_ID)

        now = now or utcnow()
        return cls(
            user_id=user_id,
            vehicle_id=vehicle_id,
            created_at=now,
            expires_at=now + timedelta(seconds=cls.DURATION_SECONDS),
            updated_at=now,
        )

    # ── Predicates ────────────────────────────────────────────────────

    def is_active(self, now: Optional[datetime] = None) -> bool:
        return self.status == ReservationStatus.ACTIVE and (now or utcnow()) < self.expires_at

    def has_expired(self, now: Optional[datetime] = None) -> bool:
        return self.status == ReservationStatus.ACTIVE and (now or utcnow()) >= self.expires_at

    def remaining_seconds(self, now: Optional[datetime] = None) -> int:
        """Countdown for display; zero once the hold is over."""
        if self.status != ReservationStatus.ACTIVE:
            return 0
        remaining = (self.expires_at - (now or utcnow())).total_seconds()
        return math.ceil(remaining) if remaining > 0 else 0

    # ── Transitions ───────────────────────────────────────────────────

    def cancel(self, now: Optional[datetime] = None) -> None:
        """Manual cancellation by the user; carries no penalty."""
        now = now or utcnow()
        if self.status != ReservationStatus.ACTIVE:
            raise DomainError(ReservationErrors.not_active("cancel"))
        if self.has_expired(now):
            raise DomainError(ReservationErrors.ALREADY_EXPIRED)
        self._transition_to(ReservationStatus.CANCELLED, now)
        self.cancelled_at = now

    def mark_as_expired(self, now: Optional[datetime] = None) -> None:
        now = now or utcnow()
        if self.status != ReservationStatus.ACTIVE:
            raise DomainError(ReservationErrors.not_active("expire"))
        if not self.has_expired(now):
            raise DomainError(ReservationErrors.NOT_YET_EXPIRED)
        self._transition_to(ReservationStatus.EXPIRED, now)

    def convert_to_trip(self, now: Optional[datetime] = None) -> None:
        now = now or utcnow()
        if self.status != ReservationStatus.ACTIVE:
            raise DomainError(ReservationErrors.not_active("convert"))
        if self.has_expired(now):
            raise DomainError(ReservationErrors.EXPIRED)
        self._transition_to(ReservationStatus.CONVERTED, now)
        self.converted_at = now

    def _transition_to(self, new_status: ReservationStatus, now: datetime) -> None:
        if new_status not in RESERVATION_TRANSITIONS.get(self.status, set()):
            raise DomainError(ReservationErrors.not_active("change"))
        self.status = new_status
        self.updated_at = now
