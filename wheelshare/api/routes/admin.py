"""
Admin / observability endpoints
===============================

POST /api/v1/admin/reservations/expire -- run one expiry sweep now
GET  /api/v1/admin/health              -- simple health check
"""

from fastapi import APIRouter, Depends, Request

from wheelshare.api.dependencies import get_uow
from wheelshare.api.errors import unwrap
from wheelshare.api.middleware import limiter
from wheelshare.api.schemas import ExpireSweepResponse, HealthResponse
from wheelshare.application.reservations import expire_reservations
from wheelshare.config import settings
from wheelshare.infrastructure.unit_of_work import SqlAlchemyUnitOfWork

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post(
    "/reservations/expire",
    response_model=ExpireSweepResponse,
    summary="Expire every reservation past its hold time",
)
@limiter.limit(settings.rate_limit)
async def expire_now(
    request: Request,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
):
    return ExpireSweepResponse(expired=unwrap(await expire_reservations(uow)))


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
