"""
Reservation endpoints
=====================

POST  /api/v1/reservations                         -- hold a vehicle for 5 minutes
PATCH /api/v1/reservations/{reservation_id}/cancel -- release the hold
GET   /api/v1/reservations/active?user_id=...      -- current hold with countdown
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Request

from wheelshare.api.dependencies import get_uow
from wheelshare.api.errors import unwrap
from wheelshare.api.middleware import limiter
from wheelshare.api.schemas import (
    ErrorResponse,
    ReservationCancelRequest,
    ReservationCreateRequest,
    ReservationResponse,
)
from wheelshare.application import reservations as handlers
from wheelshare.config import settings
from wheelshare.infrastructure.unit_of_work import SqlAlchemyUnitOfWork

router = APIRouter(prefix="/reservations", tags=["reservations"])


@router.post(
    "",
    status_code=201,
    response_model=ReservationResponse,
    summary="Reserve a vehicle",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def create_reservation(
    request: Request,
    body: ReservationCreateRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
):
    return unwrap(
        await handlers.create_reservation(uow, body.user_id, body.vehicle_id)
    )


@router.patch(
    "/{reservation_id}/cancel",
    response_model=ReservationResponse,
    summary="Cancel a reservation",
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
@limiter.limit(settings.rate_limit)
async def cancel_reservation(
    request: Request,
    reservation_id: uuid.UUID,
    body: ReservationCancelRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
):
    return unwrap(
        await handlers.cancel_reservation(uow, reservation_id, body.user_id)
    )


@router.get(
    "/active",
    response_model=ReservationResponse,
    summary="Get the caller's active reservation",
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def get_active_reservation(
    request: Request,
    user_id: uuid.UUID,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
):
    return unwrap(await handlers.get_active_reservation(uow, user_id))
