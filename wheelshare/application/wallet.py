"""Wallet top-up handler."""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from wheelshare.application.dtos import WalletTopUp
from wheelshare.domain.errors import DomainError, Result
from wheelshare.domain.wallet import CURRENCY, UserErrors, WalletTransaction
from wheelshare.infrastructure.unit_of_work import (
    ConcurrencyConflict,
    SqlAlchemyUnitOfWork,
)

logger = logging.getLogger(__name__)


async def add_funds_to_wallet(
    uow: SqlAlchemyUnitOfWork,
    user_id: uuid.UUID,
    amount: Decimal,
    payment_method: str = "Card",
) -> Result[WalletTopUp]:
    if amount <= 0:
        return Result.fail(UserErrors.INVALID_AMOUNT)

    user = await uow.users.get_by_id(user_id)
    if user is None:
        return Result.fail(UserErrors.NOT_FOUND)

    before = user.wallet_balance
    try:
        user.add_to_wallet(amount)
        uow.wallet_transactions.add(
            WalletTransaction.top_up(
                user_id, amount, payment_method, before, user.wallet_balance
            )
        )
    except DomainError as exc:
        return Result.fail(exc.error)

    after = user.wallet_balance
    try:
        await uow.commit()
    except ConcurrencyConflict:
        return Result.fail(UserErrors.WALLET_CONFLICT)

    logger.info(
        "Wallet top-up for user %s: +%s %s (balance %s)",
        user_id, amount, CURRENCY, after,
    )
    return Result.ok(WalletTopUp(user_id, amount, before, after))
