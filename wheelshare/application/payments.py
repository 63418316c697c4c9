"""
Trip Payment Processor  (Strategy Pattern for the card gateway)
===============================================================

Funding order
-------------
1. **Wallet** whenever ``balance >= amount``.  The stored-card lookup is not
   even issued in this case.
2. **Default credit card** otherwise, provided it exists and has not expired.

Retry policy
------------
Both paths make at most ``max_attempts`` (3) attempts.  Between attempts the
processor sleeps ``initial_delay * 2 ** (attempt - 1)``: 500 ms, then 1000 ms.
Only transient failures are retried (an exception, or a declined gateway
call); business refusals such as insufficient funds or an expired card are
returned at once.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Awaitable, Callable, Optional

from wheelshare.config import settings
from wheelshare.domain.enums import PaymentMethodKind
from wheelshare.domain.errors import DomainError, Error, Result
from wheelshare.domain.wallet import CURRENCY, PaymentMethod, User

logger = logging.getLogger(__name__)


class PaymentErrors:
    INVALID_AMOUNT = Error(
        "Payment.InvalidAmount", "Payment amount must be greater than zero"
    )
    USER_NOT_FOUND = Error("Payment.UserNotFound", "User not found")
    NO_PAYMENT_METHOD = Error(
        "Payment.NoPaymentMethod",
        "No default payment method found. Please add a credit card.",
    )
    CARD_EXPIRED = Error(
        "Payment.CardExpired",
        "Credit card has expired. Please update your payment method.",
    )

    @staticmethod
    def wallet_failed(attempts: int, reason: str) -> Error:
        return Error(
            "Payment.WalletPaymentFailed",
            f"Wallet payment failed after {attempts} attempts: {reason}",
        )

    @staticmethod
    def card_failed(attempts: int) -> Error:
        return Error(
            "Payment.CreditCardPaymentFailed",
            f"Credit card payment failed after {attempts} retry attempts. "
            "Please try again later or contact support.",
        )


@dataclass(frozen=True)
class PaymentResult:
    method: PaymentMethodKind
    message: str
    amount_charged: Decimal
    card_last4: Optional[str] = None


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    initial_delay_ms: int = 500

    def delay_seconds(self, attempt: int) -> float:
        """Backoff to wait after a failed 1-based ``attempt``."""
        return self.initial_delay_ms * 2 ** (attempt - 1) / 1000


DEFAULT_RETRY_POLICY = RetryPolicy(
    max_attempts=settings.payment_max_attempts,
    initial_delay_ms=settings.payment_initial_delay_ms,
)


# ── Gateway strategy ──────────────────────────────────────────────────


class CardGateway(ABC):
    @abstractmethod
    async def charge(self, card: PaymentMethod, amount: Decimal) -> bool:
        """Return True when the charge was approved."""


class SimulatedCardGateway(CardGateway):
    """Stand-in for a real acquirer; approves every charge."""

    def __init__(self, latency_seconds: float = 0.1):
        self.latency_seconds = latency_seconds

    async def charge(self, card: PaymentMethod, amount: Decimal) -> bool:
        await asyncio.sleep(self.latency_seconds)
        return True


# ── Processor ─────────────────────────────────────────────────────────


class PaymentProcessor:
    def __init__(
        self,
        users,
        payment_methods,
        gateway: Optional[CardGateway] = None,
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.users = users
        self.payment_methods = payment_methods
        self.gateway = gateway or SimulatedCardGateway()
        self.policy = policy
        self.sleep = sleep

    async def process_trip_payment(
        self, user_id: uuid.UUID, amount: Decimal
    ) -> Result[PaymentResult]:
        if amount <= 0:
            return Result.fail(PaymentErrors.INVALID_AMOUNT)

        user = await self.users.get_by_id(user_id)
        if user is None:
            return Result.fail(PaymentErrors.USER_NOT_FOUND)

        if user.wallet_balance >= amount:
            return await self._pay_from_wallet(user, amount)

        logger.warning(
            "Insufficient wallet balance for user %s. Balance: %s %s, Required: %s %s. "
            "Attempting credit card fallback.",
            user_id, user.wallet_balance, CURRENCY, amount, CURRENCY,
        )
        return await self._pay_with_card(user_id, amount)

    async def _pay_from_wallet(self, user: User, amount: Decimal) -> Result[PaymentResult]:
        attempts = self.policy.max_attempts
        for attempt in range(1, attempts + 1):
            try:
                user.deduct_from_wallet(amount)
            except DomainError as exc:
                # Business refusal: never retried
                return Result.fail(exc.error)
            except Exception as exc:
                logger.warning(
                    "Wallet payment attempt %d failed for user %s",
                    attempt, user.id, exc_info=True,
                )
                if attempt == attempts:
                    return Result.fail(PaymentErrors.wallet_failed(attempts, str(exc)))
                await self.sleep(self.policy.delay_seconds(attempt))
                continue

            logger.info(
                "Wallet payment successful for user %s. Amount: %s %s",
                user.id, amount, CURRENCY,
            )
            return Result.ok(
                PaymentResult(PaymentMethodKind.WALLET, "Paid from Wallet", amount)
            )

        return Result.fail(PaymentErrors.wallet_failed(attempts, "no attempt succeeded"))

    async def _pay_with_card(self, user_id: uuid.UUID, amount: Decimal) -> Result[PaymentResult]:
        card = await self.payment_methods.get_default_by_user(user_id)
        if card is None:
            return Result.fail(PaymentErrors.NO_PAYMENT_METHOD)
        if card.is_expired():
            return Result.fail(PaymentErrors.CARD_EXPIRED)

        attempts = self.policy.max_attempts
        for attempt in range(1, attempts + 1):
            logger.info(
                "Attempting credit card payment for user %s. Attempt %d/%d. Amount: %s %s",
                user_id, attempt, attempts, amount, CURRENCY,
            )
            try:
                approved = await self.gateway.charge(card, amount)
            except Exception:
                logger.exception(
                    "Credit card payment attempt %d encountered error for user %s",
                    attempt, user_id,
                )
                approved = False

            if approved:
                logger.info(
                    "Credit card payment successful for user %s. Card: %s. Amount: %s %s",
                    user_id, card, amount, CURRENCY,
                )
                return Result.ok(
                    PaymentResult(
                        PaymentMethodKind.CREDIT_CARD,
                        f"Paid with {card.card_type} ****{card.card_last4}",
                        amount,
                        card.card_last4,
                    )
                )

            if attempt < attempts:
                delay = self.policy.delay_seconds(attempt)
                logger.info("Retrying credit card payment after %.0fms delay", delay * 1000)
                await self.sleep(delay)

        return Result.fail(PaymentErrors.card_failed(attempts))
