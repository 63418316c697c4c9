"""
Rider wallet, stored credit cards and the wallet ledger.

The wallet balance is a non-negative ``Decimal`` that only changes through
``User.deduct_from_wallet`` / ``User.add_to_wallet``.  Cards are kept as
last-4 digits plus expiry; nothing else about the PAN is stored.
"""

from __future__ import annotations

import calendar
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from .enums import WalletTransactionType
from .errors import DomainError, Error
from .value_objects import utcnow

CURRENCY = "MAD"


class UserErrors:
    NOT_FOUND = Error("User.NotFound", "User not found")
    INVALID_AMOUNT = Error("User.InvalidAmount", "Amount must be greater than zero")
    WALLET_CONFLICT = Error(
        "User.WalletConflict", "Wallet was updated concurrently, please retry"
    )

    @staticmethod
    def insufficient_funds(
        available: Decimal, required: Decimal, hint: Optional[str] = None
    ) -> Error:
        message = (
            f"Insufficient wallet balance. Available: {available} {CURRENCY}, "
            f"Required: {required} {CURRENCY}"
        )
        if hint:
            message = f"{message}. {hint}"
        return Error("User.InsufficientFunds", message)


class PaymentMethodErrors:
    INVALID_CARD_LAST4 = Error(
        "PaymentMethod.InvalidCardLast4",
        "Card last 4 digits must be exactly 4 numeric digits",
    )
    INVALID_CARD_TYPE = Error("PaymentMethod.InvalidCardType", "Card type is required")
    INVALID_EXPIRY_MONTH = Error(
        "PaymentMethod.InvalidExpiryMonth", "Expiry month must be between 1 and 12"
    )
    CARD_EXPIRED = Error("PaymentMethod.CardExpired", "Card has already expired")


@dataclass(eq=False)
class User:
    full_name: str
    email: str
    phone_number: str
    wallet_balance: Decimal = Decimal("0")
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def register(cls, full_name: str, email: str, phone_number: str) -> "User":
        now = utcnow()
        return cls(
            full_name=full_name,
            email=email.strip().lower(),
            phone_number=phone_number,
            created_at=now,
            updated_at=now,
        )

    def deduct_from_wallet(self, amount: Decimal) -> None:
        if amount <= 0:
            raise DomainError(UserErrors.INVALID_AMOUNT)
        if self.wallet_balance < amount:
            raise DomainError(
                UserErrors.insufficient_funds(self.wallet_balance, amount)
            )
        self.wallet_balance -= amount
        self.updated_at = utcnow()

    def add_to_wallet(self, amount: Decimal) -> None:
        if amount <= 0:
            raise DomainError(UserErrors.INVALID_AMOUNT)
        self.wallet_balance += amount
        self.updated_at = utcnow()


@dataclass(eq=False)
class PaymentMethod:
    user_id: uuid.UUID
    card_last4: str
    card_type: str
    expiry_month: int
    expiry_year: int
    is_default: bool = False
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    SUPPORTED_CARD_TYPES = ("Visa", "Mastercard", "Amex", "Discover")

    @classmethod
    def create(
        cls,
        user_id: uuid.UUID,
        card_last4: str,
        card_type: str,
        expiry_month: int,
        expiry_year: int,
        is_default: bool = False,
        today: Optional[date] = None,
    ) -> "PaymentMethod":
        if not card_last4 or len(card_last4) != 4 or not card_last4.isdigit():
            raise DomainError(PaymentMethodErrors.INVALID_CARD_LAST4)
        if not card_type or not card_type.strip():
            raise DomainError(PaymentMethodErrors.INVALID_CARD_TYPE)

        canonical = next(
            (t for t in cls.SUPPORTED_CARD_TYPES if t.lower() == card_type.strip().lower()),
            None,
        )
        if canonical is None:
            raise DomainError(
                Error(
                    "PaymentMethod.UnsupportedCardType",
                    f"Card type must be one of: {', '.join(cls.SUPPORTED_CARD_TYPES)}",
                )
            )
        if expiry_month < 1 or expiry_month > 12:
            raise DomainError(PaymentMethodErrors.INVALID_EXPIRY_MONTH)

        today = today or utcnow().date()
        if expiry_year < today.year or expiry_year > today.year + 20:
            raise DomainError(
                Error(
                    "PaymentMethod.InvalidExpiryYear",
                    f"Expiry year must be between {today.year} and {today.year + 20}",
                )
            )

        now = utcnow()
        method = cls(
            user_id=user_id,
            card_last4=card_last4,
            card_type=canonical,
            expiry_month=expiry_month,
            expiry_year=expiry_year,
            is_default=is_default,
            created_at=now,
            updated_at=now,
        )
        if method.is_expired(today):
            raise DomainError(PaymentMethodErrors.CARD_EXPIRED)
        return method

    def expiry_date(self) -> date:
        """Cards are valid through the last day of their expiry month."""
        last_day = calendar.monthrange(self.expiry_year, self.expiry_month)[1]
        return date(self.expiry_year, self.expiry_month, last_day)

    def is_expired(self, today: Optional[date] = None) -> bool:
        return self.expiry_date() < (today or utcnow().date())

    def mark_as_default(self) -> None:
        self.is_default = True
        self.updated_at = utcnow()

    def unmark_as_default(self) -> None:
        self.is_default = False
        self.updated_at = utcnow()

    def __str__(self) -> str:
        return f"{self.card_type} ****{self.card_last4}"


@dataclass(eq=False)
class WalletTransaction:
    """Immutable ledger row; one per top-up or deduction."""

    user_id: uuid.UUID
    amount: Decimal
    transaction_type: WalletTransactionType
    payment_method: str
    balance_before: Decimal
    balance_after: Decimal
    payment_details: Optional[str] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: Optional[datetime] = None

    @classmethod
    def top_up(
        cls,
        user_id: uuid.UUID,
        amount: Decimal,
        payment_method: str,
        balance_before: Decimal,
        balance_after: Decimal,
        payment_details: Optional[str] = None,
    ) -> "WalletTransaction":
        if amount <= 0:
            raise DomainError(UserErrors.INVALID_AMOUNT)
        return cls(
            user_id=user_id,
            amount=amount,
            transaction_type=WalletTransactionType.TOP_UP,
            payment_method=payment_method,
            payment_details=payment_details,
            balance_before=balance_before,
            balance_after=balance_after,
            created_at=utcnow(),
        )

    @classmethod
    def deduction(
        cls,
        user_id: uuid.UUID,
        amount: Decimal,
        balance_before: Decimal,
        balance_after: Decimal,
        payment_details: str = "Trip payment",
    ) -> "WalletTransaction":
        if amount <= 0:
            raise DomainError(UserErrors.INVALID_AMOUNT)
        return cls(
            user_id=user_id,
            amount=amount,
            transaction_type=WalletTransactionType.DEDUCTION,
            payment_method="Wallet",
            payment_details=payment_details,
            balance_before=balance_before,
            balance_after=balance_after,
            created_at=utcnow(),
        )
