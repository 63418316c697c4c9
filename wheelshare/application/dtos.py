"""Read models returned by the orchestration handlers."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from wheelshare.domain.enums import PaymentMethodKind, ReservationStatus, TripStatus
from wheelshare.domain.pricing import format_distance, format_duration
from wheelshare.domain.receipt import Receipt
from wheelshare.domain.reservation import Reservation
from wheelshare.domain.trip import ActiveTrip
from wheelshare.domain.value_objects import Location, utcnow
from wheelshare.domain.vehicle import Vehicle


@dataclass(frozen=True)
class ReservationView:
    id: uuid.UUID
    user_id: uuid.UUID
    vehicle_id: uuid.UUID
    vehicle_code: Optional[str]
    status: ReservationStatus
    created_at: datetime
    expires_at: datetime
    remaining_seconds: int

    @classmethod
    def of(
        cls,
        reservation: Reservation,
        vehicle: Optional[Vehicle] = None,
        now: Optional[datetime] = None,
    ) -> "ReservationView":
        return cls(
            id=reservation.id,
            user_id=reservation.user_id,
            vehicle_id=reservation.vehicle_id,
            vehicle_code=vehicle.code if vehicle else None,
            status=reservation.status,
            created_at=reservation.created_at,
            expires_at=reservation.expires_at,
            remaining_seconds=reservation.remaining_seconds(now),
        )


@dataclass(frozen=True)
class TripView:
    id: uuid.UUID
    user_id: uuid.UUID
    vehicle_id: uuid.UUID
    reservation_id: Optional[uuid.UUID]
    status: TripStatus
    start_time: datetime
    start_location: Location
    end_time: Optional[datetime]
    end_location: Optional[Location]
    duration_minutes: int
    total_cost: Decimal
    rating_stars: Optional[int]
    rating_comment: Optional[str]

    @classmethod
    def of(cls, trip: ActiveTrip, now: Optional[datetime] = None) -> "TripView":
        return cls(
            id=trip.id,
            user_id=trip.user_id,
            vehicle_id=trip.vehicle_id,
            reservation_id=trip.reservation_id,
            status=trip.status,
            start_time=trip.start_time,
            start_location=trip.start_location,
            end_time=trip.end_time,
            end_location=trip.end_location,
            duration_minutes=trip.current_duration_minutes(now),
            total_cost=trip.current_estimated_cost(now),
            rating_stars=trip.rating_stars,
            rating_comment=trip.rating_comment,
        )


@dataclass(frozen=True)
class TripStats:
    """Live meter readout for an ACTIVE trip."""

    trip_id: uuid.UUID
    vehicle_id: uuid.UUID
    start_time: datetime
    duration_minutes: int
    estimated_cost: Decimal
    distance_meters: int
    formatted_duration: str
    formatted_distance: str

    @classmethod
    def of(cls, trip: ActiveTrip, now: Optional[datetime] = None) -> "TripStats":
        now = now or utcnow()
        minutes = trip.current_duration_minutes(now)
        meters = trip.mock_distance_meters(now)
        return cls(
            trip_id=trip.id,
            vehicle_id=trip.vehicle_id,
            start_time=trip.start_time,
            duration_minutes=minutes,
            estimated_cost=trip.current_estimated_cost(now),
            distance_meters=meters,
            formatted_duration=format_duration(minutes),
            formatted_distance=format_distance(meters),
        )


@dataclass(frozen=True)
class TripSummary:
    trip_id: uuid.UUID
    receipt_number: str
    vehicle_code: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    formatted_duration: str
    distance_meters: int
    formatted_distance: str
    base_cost: Decimal
    time_cost: Decimal
    total_cost: Decimal
    payment_method: PaymentMethodKind
    payment_message: str
    wallet_balance_before: Decimal
    wallet_balance_after: Decimal
    start_location: Location
    end_location: Location


@dataclass(frozen=True)
class TripHistoryPage:
    items: list[TripView]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.page_size - 1) // self.page_size


@dataclass(frozen=True)
class WalletTopUp:
    user_id: uuid.UUID
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal


@dataclass(frozen=True)
class ReceiptView:
    id: uuid.UUID
    receipt_number: str
    trip_id: uuid.UUID
    user_id: uuid.UUID
    vehicle_code: str
    trip_start_time: datetime
    trip_end_time: datetime
    duration_minutes: int
    formatted_duration: str
    distance_meters: int
    formatted_distance: str
    start_location: Location
    end_location: Location
    base_cost: Decimal
    time_cost: Decimal
    total_cost: Decimal
    payment_method: str
    payment_details: str
    wallet_balance_before: Decimal
    wallet_balance_after: Decimal
    created_at: datetime

    @classmethod
    def of(cls, receipt: Receipt) -> "ReceiptView":
        return cls(
            id=receipt.id,
            receipt_number=receipt.receipt_number,
            trip_id=receipt.trip_id,
            user_id=receipt.user_id,
            vehicle_code=receipt.vehicle_code,
            trip_start_time=receipt.trip_start_time,
            trip_end_time=receipt.trip_end_time,
            duration_minutes=receipt.duration_minutes,
            formatted_duration=format_duration(receipt.duration_minutes),
            distance_meters=receipt.distance_meters,
            formatted_distance=format_distance(receipt.distance_meters),
            start_location=Location(receipt.start_latitude, receipt.start_longitude),
            end_location=Location(receipt.end_latitude, receipt.end_longitude),
            base_cost=receipt.base_cost,
            time_cost=receipt.time_cost,
            total_cost=receipt.total_cost,
            payment_method=receipt.payment_method,
            payment_details=receipt.payment_details,
            wallet_balance_before=receipt.wallet_balance_before,
            wallet_balance_after=receipt.wallet_balance_after,
            created_at=receipt.created_at,
        )
