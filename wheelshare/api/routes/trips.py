"""
Trip endpoints
==============

POST /api/v1/trips/start            -- scan a QR code and unlock the reserved vehicle
POST /api/v1/trips/end              -- lock the vehicle, pay, get the summary
POST /api/v1/trips/{trip_id}/rate   -- 1-5 stars on a completed trip
GET  /api/v1/trips/active           -- live meter for the current trip
GET  /api/v1/trips/history          -- paginated finished trips
GET  /api/v1/trips/{trip_id}        -- one trip
GET  /api/v1/trips/{trip_id}/receipt -- receipt of a completed trip
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Request

from wheelshare.api.dependencies import get_uow
from wheelshare.api.errors import unwrap
from wheelshare.api.middleware import limiter
from wheelshare.api.schemas import (
    ErrorResponse,
    ReceiptResponse,
    TripEndRequest,
    TripHistoryResponse,
    TripRateRequest,
    TripResponse,
    TripStartRequest,
    TripStatsResponse,
    TripSummaryResponse,
)
from wheelshare.application import trips as handlers
from wheelshare.config import settings
from wheelshare.infrastructure.unit_of_work import SqlAlchemyUnitOfWork

router = APIRouter(prefix="/trips", tags=["trips"])


@router.post(
    "/start",
    status_code=201,
    response_model=TripResponse,
    summary="Start a trip on the reserved vehicle",
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
@limiter.limit(settings.rate_limit)
async def start_trip(
    request: Request,
    body: TripStartRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
):
    return unwrap(
        await handlers.start_trip(
            uow, body.user_id, body.qr_code, body.latitude, body.longitude
        )
    )


@router.post(
    "/end",
    response_model=TripSummaryResponse,
    summary="End the active trip and pay",
    responses={
        402: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
@limiter.limit(settings.rate_limit)
async def end_trip(
    request: Request,
    body: TripEndRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
):
    return unwrap(
        await handlers.end_trip(uow, body.user_id, body.latitude, body.longitude)
    )


@router.post(
    "/{trip_id}/rate",
    response_model=TripResponse,
    summary="Rate a completed trip",
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
@limiter.limit(settings.rate_limit)
async def rate_trip(
    request: Request,
    trip_id: uuid.UUID,
    body: TripRateRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
):
    return unwrap(
        await handlers.rate_trip(uow, trip_id, body.user_id, body.stars, body.comment)
    )


@router.get(
    "/active",
    response_model=TripStatsResponse,
    summary="Live duration, cost and distance of the active trip",
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def get_active_trip(
    request: Request,
    user_id: uuid.UUID,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
):
    return unwrap(await handlers.get_active_trip_stats(uow, user_id))


@router.get(
    "/history",
    response_model=TripHistoryResponse,
    summary="Finished trips, newest first",
    responses={400: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def get_trip_history(
    request: Request,
    user_id: uuid.UUID,
    page: int = Query(1),
    page_size: int = Query(20),
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
):
    return unwrap(await handlers.get_trip_history(uow, user_id, page, page_size))


@router.get(
    "/{trip_id}",
    response_model=TripResponse,
    summary="Get one of the caller's trips",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def get_trip(
    request: Request,
    trip_id: uuid.UUID,
    user_id: uuid.UUID,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
):
    return unwrap(await handlers.get_trip_by_id(uow, trip_id, user_id))


@router.get(
    "/{trip_id}/receipt",
    response_model=ReceiptResponse,
    summary="Receipt of one of the caller's completed trips",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def get_trip_receipt(
    request: Request,
    trip_id: uuid.UUID,
    user_id: uuid.UUID,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
):
    return unwrap(await handlers.get_trip_receipt(uow, trip_id, user_id))
