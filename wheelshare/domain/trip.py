"""
ActiveTrip aggregate: a metered rental session.

Patterns used
-------------
- **State Pattern**: ACTIVE -> COMPLETED | CANCELLED, both terminal.
- Cost, duration and distance are derived from the wall clock while the
  trip is ACTIVE and frozen at ``end()``; the total is recomputed from the
  tariff each time, never accumulated.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .enums import TRIP_TRANSITIONS, TripStatus
from .errors import DomainError, Error
from .pricing import STANDARD_TARIFF, Tariff, started_minutes
from .value_objects import Location, Rating, utcnow


class TripErrors:
    INVALID_USER_ID = Error("Trip.InvalidUserId", "User ID is required")
    INVALID_VEHICLE_ID = Error("Trip.InvalidVehicleId", "Vehicle ID is required")
    NOT_FOUND = Error("Trip.NotFound", "Trip not found")
    UNAUTHORIZED = Error("Trip.Unauthorized", "You can only access your own trips")
    NOT_COMPLETED = Error("Trip.NotCompleted", "Only completed trips can be rated")
    ALREADY_RATED = Error("Trip.AlreadyRated", "This trip has already been rated")
    NO_ACTIVE_TRIP = Error("Trip.NoActiveTrip", "No active trip found for this user")
    VEHICLE_NOT_FOUND = Error(
        "Trip.VehicleNotFound", "Vehicle with this QR code not found"
    )
    USER_NOT_FOUND = Error("Trip.UserNotFound", "User not found")
    USER_ALREADY_HAS_ACTIVE_TRIP = Error(
        "Trip.UserAlreadyHasActiveTrip", "You already have an active trip"
    )
    VEHICLE_ALREADY_IN_USE = Error(
        "Trip.VehicleAlreadyInUse", "This vehicle is currently in use"
    )
    NO_ACTIVE_RESERVATION = Error(
        "Trip.NoActiveReservation",
        "You must have an active reservation to start a trip",
    )
    WRONG_VEHICLE = Error(
        "Trip.WrongVehicle", "This vehicle does not match your reservation"
    )
    INVALID_PAGE = Error(
        "Trip.InvalidPage",
        "Page must be at least 1 and page size between 1 and 100",
    )

    @staticmethod
    def not_active(action: str) -> Error:
        return Error("Trip.NotActive", f"Cannot {action} trip that is not active")


@dataclass(eq=False)
class ActiveTrip:
    user_id: uuid.UUID
    vehicle_id: uuid.UUID
    start_time: datetime
    start_latitude: float
    start_longitude: float
    reservation_id: Optional[uuid.UUID] = None
    status: TripStatus = TripStatus.ACTIVE
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    end_time: Optional[datetime] = None
    end_latitude: Optional[float] = None
    end_longitude: Optional[float] = None
    total_cost: Decimal = STANDARD_TARIFF.base_cost
    duration_minutes: int = 0
    rating_stars: Optional[int] = None
    rating_comment: Optional[str] = None
    rated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    tariff = STANDARD_TARIFF

    @classmethod
    def start(
        cls,
        user_id: uuid.UUID,
        vehicle_id: uuid.UUID,
        reservation_id: Optional[uuid.UUID],
        start_location: Location,
        now: Optional[datetime] = None,
    ) -> "ActiveTrip":
        if user_id is None or user_id.int == 0:
            raise DomainError(TripErrors.INVALID_USER_ID)
        if vehicle_id is None or vehicle_id.int == 0:
            raise DomainError(TripErrors.INVALID_VEHICLE_ID)

        now = now or utcnow()
        return cls(
            user_id=user_id,
            vehicle_id=vehicle_id,
            reservation_id=reservation_id,
            start_time=now,
            start_latitude=start_location.latitude,
            start_longitude=start_location.longitude,
            total_cost=cls.tariff.base_cost,
            duration_minutes=0,
            created_at=now,
            updated_at=now,
        )

    # ── Read helpers ──────────────────────────────────────────────────

    @property
    def start_location(self) -> Location:
        return Location(self.start_latitude, self.start_longitude)

    @property
    def end_location(self) -> Optional[Location]:
        if self.end_latitude is None or self.end_longitude is None:
            return None
        return Location(self.end_latitude, self.end_longitude)

    @property
    def rating(self) -> Optional[Rating]:
        if self.rating_stars is None:
            return None
        return Rating(self.rating_stars, self.rating_comment)

    def is_active(self) -> bool:
        return self.status == TripStatus.ACTIVE

    # ── Metering ──────────────────────────────────────────────────────

    def current_duration_minutes(self, now: Optional[datetime] = None) -> int:
        if not self.is_active():
            return self.duration_minutes
        return started_minutes((now or utcnow()) - self.start_time)

    def current_estimated_cost(self, now: Optional[datetime] = None) -> Decimal:
        if not self.is_active():
            return self.total_cost
        return self.tariff.cost_for(self.current_duration_minutes(now))

    def mock_distance_meters(self, now: Optional[datetime] = None) -> int:
        return self.tariff.distance_for(self.current_duration_minutes(now))

    # ── Transitions ───────────────────────────────────────────────────

    def end(self, end_location: Location, now: Optional[datetime] = None) -> None:
        """Close the trip and freeze duration and cost at this instant."""
        if not self.is_active():
            raise DomainError(TripErrors.not_active("end"))

        now = now or utcnow()
        minutes = self.current_duration_minutes(now)
        self._transition_to(TripStatus.COMPLETED, now)
        self.end_time = now
        self.end_latitude = end_location.latitude
        self.end_longitude = end_location.longitude
        self.duration_minutes = minutes
        self.total_cost = self.tariff.cost_for(minutes)

    def cancel(self, now: Optional[datetime] = None) -> None:
        if not self.is_active():
            raise DomainError(TripErrors.not_active("cancel"))
        now = now or utcnow()
        self._transition_to(TripStatus.CANCELLED, now)
        self.end_time = now

    def add_rating(self, rating: Rating, now: Optional[datetime] = None) -> None:
        if self.status != TripStatus.COMPLETED:
            raise DomainError(TripErrors.NOT_COMPLETED)
        if self.rating_stars is not None:
            raise DomainError(TripErrors.ALREADY_RATED)
        now = now or utcnow()
        self.rating_stars = rating.stars
        self.rating_comment = rating.comment
        self.rated_at = now
        self.updated_at = now

    def _transition_to(self, new_status: TripStatus, now: datetime) -> None:
        if new_status not in TRIP_TRANSITIONS.get(self.status, set()):
            raise DomainError(TripErrors.not_active("change"))
        self.status = new_status
        self.updated_at = now
