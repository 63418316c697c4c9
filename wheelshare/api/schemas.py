"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


# ── Requests ──────────────────────────────────────────────────────────
#
# Coordinates are range-checked by the domain (Location.create) so that
# out-of-range values come back with the Location.* error codes.


class ReservationCreateRequest(BaseModel):
    user_id: uuid.UUID
    vehicle_id: uuid.UUID


class ReservationCancelRequest(BaseModel):
    user_id: uuid.UUID


class TripStartRequest(BaseModel):
    user_id: uuid.UUID
    qr_code: str = Field(..., max_length=32, examples=["ECO-1234"])
    latitude: float
    longitude: float


class TripEndRequest(BaseModel):
    user_id: uuid.UUID
    latitude: float
    longitude: float


class TripRateRequest(BaseModel):
    user_id: uuid.UUID
    stars: int
    comment: Optional[str] = None


class WalletTopUpRequest(BaseModel):
    user_id: uuid.UUID
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    payment_method: str = Field("Card", max_length=50)


# ── Responses ─────────────────────────────────────────────────────────


class LocationResponse(BaseModel):
    latitude: float
    longitude: float

    model_config = {"from_attributes": True}


class ReservationResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    vehicle_id: uuid.UUID
    vehicle_code: Optional[str] = None
    status: str
    created_at: datetime
    expires_at: datetime
    remaining_seconds: int

    model_config = {"from_attributes": True}


class TripResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    vehicle_id: uuid.UUID
    reservation_id: Optional[uuid.UUID] = None
    status: str
    start_time: datetime
    start_location: LocationResponse
    end_time: Optional[datetime] = None
    end_location: Optional[LocationResponse] = None
    duration_minutes: int
    total_cost: Decimal
    rating_stars: Optional[int] = None
    rating_comment: Optional[str] = None

    model_config = {"from_attributes": True}


class TripStatsResponse(BaseModel):
    trip_id: uuid.UUID
    vehicle_id: uuid.UUID
    start_time: datetime
    duration_minutes: int
    estimated_cost: Decimal
    distance_meters: int
    formatted_duration: str
    formatted_distance: str

    model_config = {"from_attributes": True}


class TripSummaryResponse(BaseModel):
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
    payment_method: str
    payment_message: str
    wallet_balance_before: Decimal
    wallet_balance_after: Decimal
    start_location: LocationResponse
    end_location: LocationResponse

    model_config = {"from_attributes": True}


class ReceiptResponse(BaseModel):
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
    start_location: LocationResponse
    end_location: LocationResponse
    base_cost: Decimal
    time_cost: Decimal
    total_cost: Decimal
    payment_method: str
    payment_details: str
    wallet_balance_before: Decimal
    wallet_balance_after: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}


class TripHistoryResponse(BaseModel):
    items: list[TripResponse] = []
    total: int
    page: int
    page_size: int
    total_pages: int

    model_config = {"from_attributes": True}


class WalletTopUpResponse(BaseModel):
    user_id: uuid.UUID
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal

    model_config = {"from_attributes": True}


class ExpireSweepResponse(BaseModel):
    expired: int


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    code: str
    message: str
