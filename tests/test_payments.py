"""
Payment processor tests.

Stores and the card gateway are ``AsyncMock``s; the backoff sleep is
injected so the retry schedule can be asserted without waiting.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from wheelshare.application.payments import (
    PaymentProcessor,
    RetryPolicy,
    SimulatedCardGateway,
)
from wheelshare.domain.enums import PaymentMethodKind
from wheelshare.domain.wallet import PaymentMethod, User

from tests.conftest import make_card, make_user


def stores(user: User | None, card: PaymentMethod | None = None):
    users = MagicMock()
    users.get_by_id = AsyncMock(return_value=user)
    payment_methods = MagicMock()
    payment_methods.get_default_by_user = AsyncMock(return_value=card)
    return users, payment_methods


def processor(user, card=None, gateway=None):
    users, payment_methods = stores(user, card)
    sleep = AsyncMock()
    proc = PaymentProcessor(
        users,
        payment_methods,
        gateway=gateway or SimulatedCardGateway(latency_seconds=0),
        policy=RetryPolicy(max_attempts=3, initial_delay_ms=500),
        sleep=sleep,
    )
    return proc, payment_methods, sleep


def slept(sleep: AsyncMock) -> list[float]:
    return [c.args[0] for c in sleep.await_args_list]


class TestRetryPolicy:
    def test_backoff_doubles(self):
        policy = RetryPolicy()
        assert [policy.delay_seconds(n) for n in (1, 2, 3)] == [0.5, 1.0, 2.0]


class TestWalletPath:
    @pytest.mark.asyncio
    async def test_wallet_preferred_and_card_never_looked_up(self):
        user = make_user(wallet="50.00")
        proc, payment_methods, sleep = processor(user, make_card(user))

        result = await proc.process_trip_payment(user.id, Decimal("32"))

        assert result.is_success
        assert result.value.method == PaymentMethodKind.WALLET
        assert result.value.message == "Paid from Wallet"
        assert result.value.amount_charged == Decimal("32")
        assert result.value.card_last4 is None
        assert user.wallet_balance == Decimal("18.00")
        payment_methods.get_default_by_user.assert_not_awaited()
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_exact_balance_pays_from_wallet(self):
        user = make_user(wallet="32")
        proc, payment_methods, _ = processor(user)

        result = await proc.process_trip_payment(user.id, Decimal("32"))

        assert result.value.method == PaymentMethodKind.WALLET
        assert user.wallet_balance == Decimal("0")
        payment_methods.get_default_by_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transient_wallet_failure_is_retried(self):
        user = make_user(wallet="50.00")
        user.deduct_from_wallet = MagicMock(side_effect=[RuntimeError("glitch"), None])
        proc, _, sleep = processor(user)

        result = await proc.process_trip_payment(user.id, Decimal("10"))

        assert result.is_success
        assert user.deduct_from_wallet.call_count == 2
        assert slept(sleep) == [0.5]

    @pytest.mark.asyncio
    async def test_wallet_gives_up_after_three_attempts(self):
        user = make_user(wallet="50.00")
        user.deduct_from_wallet = MagicMock(side_effect=RuntimeError("db down"))
        proc, _, sleep = processor(user)

        result = await proc.process_trip_payment(user.id, Decimal("10"))

        assert result.error.code == "Payment.WalletPaymentFailed"
        assert "db down" in result.error.message
        assert user.deduct_from_wallet.call_count == 3
        assert slept(sleep) == [0.5, 1.0]


class TestCardPath:
    @pytest.mark.asyncio
    async def test_falls_back_to_default_card(self):
        user = make_user(wallet="10.00")
        proc, _, _ = processor(user, make_card(user, "4242", "Visa"))

        result = await proc.process_trip_payment(user.id, Decimal("32"))

        assert result.is_success
        assert result.value.method == PaymentMethodKind.CREDIT_CARD
        assert result.value.message == "Paid with Visa ****4242"
        assert result.value.card_last4 == "4242"
        assert user.wallet_balance == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_no_card_on_file(self):
        user = make_user(wallet="10.00")
        proc, _, _ = processor(user, card=None)

        result = await proc.process_trip_payment(user.id, Decimal("32"))

        assert result.error.code == "Payment.NoPaymentMethod"

    @pytest.mark.asyncio
    async def test_expired_card_is_refused_without_charging(self):
        user = make_user(wallet="0")
        card = make_card(user)
        card.expiry_year = 2020
        gateway = AsyncMock()
        proc, _, sleep = processor(user, card, gateway=gateway)

        result = await proc.process_trip_payment(user.id, Decimal("7"))

        assert result.error.code == "Payment.CardExpired"
        gateway.charge.assert_not_awaited()
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_declines_are_retried_with_backoff(self):
        user = make_user(wallet="0")
        gateway = AsyncMock()
        gateway.charge = AsyncMock(side_effect=[False, ConnectionError("timeout"), True])
        proc, _, sleep = processor(user, make_card(user), gateway=gateway)

        result = await proc.process_trip_payment(user.id, Decimal("7"))

        assert result.is_success
        assert gateway.charge.await_count == 3
        assert slept(sleep) == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_card_gives_up_after_three_attempts(self):
        user = make_user(wallet="0")
        gateway = AsyncMock()
        gateway.charge = AsyncMock(return_value=False)
        proc, _, sleep = processor(user, make_card(user), gateway=gateway)

        result = await proc.process_trip_payment(user.id, Decimal("7"))

        assert result.error.code == "Payment.CreditCardPaymentFailed"
        assert gateway.charge.await_count == 3
        assert slept(sleep) == [0.5, 1.0]


class TestGuards:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1")])
    async def test_non_positive_amount(self, amount):
        user = make_user()
        proc, _, _ = processor(user)
        result = await proc.process_trip_payment(user.id, amount)
        assert result.error.code == "Payment.InvalidAmount"

    @pytest.mark.asyncio
    async def test_unknown_user(self):
        proc, _, _ = processor(None)
        result = await proc.process_trip_payment(make_user().id, Decimal("7"))
        assert result.error.code == "Payment.UserNotFound"
