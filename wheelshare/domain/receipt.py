"""
Trip receipt: an immutable record of what a completed trip cost and how it
was paid.  Written in the same unit of work that closes the trip.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .errors import DomainError, Error
from .value_objects import Location, utcnow


class ReceiptErrors:
    INVALID_TRIP_ID = Error("Receipt.InvalidTripId", "Trip ID is required")
    INVALID_USER_ID = Error("Receipt.InvalidUserId", "User ID is required")
    INVALID_VEHICLE_CODE = Error("Receipt.InvalidVehicleCode", "Vehicle code is required")
    INVALID_TOTAL_COST = Error(
        "Receipt.InvalidTotalCost", "Total cost cannot be negative"
    )
    NOT_FOUND = Error("Receipt.NotFound", "Receipt not found for this trip")


def receipt_number(now: datetime) -> str:
    """``RCP-YYYYMMDD-XXXXXX`` with six random hex digits."""
    return f"RCP-{now:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


@dataclass(eq=False)
class Receipt:
    trip_id: uuid.UUID
    user_id: uuid.UUID
    receipt_number: str
    vehicle_code: str
    trip_start_time: datetime
    trip_end_time: datetime
    duration_minutes: int
    distance_meters: int
    start_latitude: float
    start_longitude: float
    end_latitude: float
    end_longitude: float
    base_cost: Decimal
    time_cost: Decimal
    total_cost: Decimal
    payment_method: str
    payment_details: str
    wallet_balance_before: Decimal
    wallet_balance_after: Decimal
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: Optional[datetime] = None

    @classmethod
    def issue(
        cls,
        trip_id: uuid.UUID,
        user_id: uuid.UUID,
        vehicle_code: str,
        trip_start_time: datetime,
        trip_end_time: datetime,
        duration_minutes: int,
        distance_meters: int,
        start_location: Location,
        end_location: Location,
        base_cost: Decimal,
        time_cost: Decimal,
        total_cost: Decimal,
        payment_method: str,
        payment_details: str,
        wallet_balance_before: Decimal,
        wallet_balance_after: Decimal,
        now: Optional[datetime] = None,
    ) -> "Receipt":
        if trip_id is None or trip_id.int == 0:
            raise DomainError(ReceiptErrors.INVALID_TRIP_ID)
        if user_id is None or user_id.int == 0:
            raise DomainError(ReceiptErrors.INVALID_USER_ID)
        if not vehicle_code or not vehicle_code.strip():
            raise DomainError(ReceiptErrors.INVALID_VEHICLE_CODE)
        if total_cost < 0:
            raise DomainError(ReceiptErrors.INVALID_TOTAL_COST)

        now = now or utcnow()
        return cls(
            trip_id=trip_id,
            user_id=user_id,
            receipt_number=receipt_number(now),
            vehicle_code=vehicle_code,
            trip_start_time=trip_start_time,
            trip_end_time=trip_end_time,
            duration_minutes=duration_minutes,
            distance_meters=distance_meters,
            start_latitude=start_location.latitude,
            start_longitude=start_location.longitude,
            end_latitude=end_location.latitude,
            end_longitude=end_location.longitude,
            base_cost=base_cost,
            time_cost=time_cost,
            total_cost=total_cost,
            payment_method=payment_method,
            payment_details=payment_details,
            wallet_balance_before=wallet_balance_before,
            wallet_balance_after=wallet_balance_after,
            created_at=now,
        )

    def __str__(self) -> str:
        return self.receipt_number
