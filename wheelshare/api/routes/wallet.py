"""
Wallet endpoints
================

POST /api/v1/wallet/top-up -- add funds and record a ledger row
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from wheelshare.api.dependencies import get_uow
from wheelshare.api.errors import unwrap
from wheelshare.api.middleware import limiter
from wheelshare.api.schemas import ErrorResponse, WalletTopUpRequest, WalletTopUpResponse
from wheelshare.application.wallet import add_funds_to_wallet
from wheelshare.config import settings
from wheelshare.infrastructure.unit_of_work import SqlAlchemyUnitOfWork

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.post(
    "/top-up",
    response_model=WalletTopUpResponse,
    summary="Add funds to the wallet",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def top_up(
    request: Request,
    body: WalletTopUpRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
):
    return unwrap(
        await add_funds_to_wallet(uow, body.user_id, body.amount, body.payment_method)
    )
