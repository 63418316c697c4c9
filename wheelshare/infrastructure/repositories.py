"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (shared through the unit of
work) and exposes domain-relevant queries only.  Nothing here commits;
``SqlAlchemyUnitOfWork.commit`` is the single write boundary.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from . import models  # noqa: F401  (registers the imperative mappings)
from wheelshare.domain.enums import ReservationStatus, TripStatus
from wheelshare.domain.receipt import Receipt
from wheelshare.domain.reservation import Reservation
from wheelshare.domain.trip import ActiveTrip
from wheelshare.domain.value_objects import utcnow
from wheelshare.domain.vehicle import Vehicle
from wheelshare.domain.wallet import PaymentMethod, User, WalletTransaction


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, user: User) -> None:
        self.session.add(user)

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_by_phone(self, phone_number: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.phone_number == phone_number)
        )
        return result.scalar_one_or_none()


class PaymentMethodRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, method: PaymentMethod) -> None:
        self.session.add(method)

    async def get_default_by_user(self, user_id: uuid.UUID) -> Optional[PaymentMethod]:
        result = await self.session.execute(
            select(PaymentMethod)
            .where(
                PaymentMethod.user_id == user_id,
                PaymentMethod.is_default.is_(True),
            )
            .order_by(PaymentMethod.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()


class WalletTransactionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, transaction: WalletTransaction) -> None:
        self.session.add(transaction)

    async def list_by_user(self, user_id: uuid.UUID) -> list[WalletTransaction]:
        result = await self.session.execute(
            select(WalletTransaction)
            .where(WalletTransaction.user_id == user_id)
            .order_by(WalletTransaction.created_at.desc())
        )
        return list(result.scalars().all())


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, vehicle: Vehicle) -> None:
        self.session.add(vehicle)

    async def get_by_id(self, vehicle_id: uuid.UUID) -> Optional[Vehicle]:
        return await self.session.get(Vehicle, vehicle_id)

    async def get_by_code(self, code: str) -> Optional[Vehicle]:
        result = await self.session.execute(
            select(Vehicle).where(Vehicle.code == code)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[Vehicle]:
        result = await self.session.execute(select(Vehicle).order_by(Vehicle.code))
        return list(result.scalars().all())


class ReservationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, reservation: Reservation) -> None:
        self.session.add(reservation)

    async def get_by_id(self, reservation_id: uuid.UUID) -> Optional[Reservation]:
        return await self.session.get(Reservation, reservation_id)

    async def get_active_by_user(self, user_id: uuid.UUID) -> Optional[Reservation]:
        """ACTIVE-status row for the user; may already be past its expiry."""
        result = await self.session.execute(
            select(Reservation).where(
                Reservation.user_id == user_id,
                Reservation.status == ReservationStatus.ACTIVE,
            )
        )
        return result.scalar_one_or_none()

    async def get_active_by_vehicle(
        self, vehicle_id: uuid.UUID
    ) -> Optional[Reservation]:
        result = await self.session.execute(
            select(Reservation).where(
                Reservation.vehicle_id == vehicle_id,
                Reservation.status == ReservationStatus.ACTIVE,
            )
        )
        return result.scalar_one_or_none()

    async def list_expired(self, now: Optional[datetime] = None) -> list[Reservation]:
        result = await self.session.execute(
            select(Reservation)
            .where(
                Reservation.status == ReservationStatus.ACTIVE,
                Reservation.expires_at <= (now or utcnow()),
            )
            .order_by(Reservation.expires_at)
        )
        return list(result.scalars().all())


class ReceiptRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, receipt: Receipt) -> None:
        self.session.add(receipt)

    async def get_by_trip_id(self, trip_id: uuid.UUID) -> Optional[Receipt]:
        result = await self.session.execute(
            select(Receipt).where(Receipt.trip_id == trip_id)
        )
        return result.scalar_one_or_none()


class TripRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, trip: ActiveTrip) -> None:
        self.session.add(trip)

    async def get_by_id(self, trip_id: uuid.UUID) -> Optional[ActiveTrip]:
        return await self.session.get(ActiveTrip, trip_id)

    async def get_active_by_user(self, user_id: uuid.UUID) -> Optional[ActiveTrip]:
        result = await self.session.execute(
            select(ActiveTrip).where(
                ActiveTrip.user_id == user_id,
                ActiveTrip.status == TripStatus.ACTIVE,
            )
        )
        return result.scalar_one_or_none()

    async def get_active_by_vehicle(
        self, vehicle_id: uuid.UUID
    ) -> Optional[ActiveTrip]:
        result = await self.session.execute(
            select(ActiveTrip).where(
                ActiveTrip.vehicle_id == vehicle_id,
                ActiveTrip.status == TripStatus.ACTIVE,
            )
        )
        return result.scalar_one_or_none()

    async def get_history(
        self, user_id: uuid.UUID, page: int = 1, page_size: int = 20
    ) -> tuple[list[ActiveTrip], int]:
        """Finished trips, newest first, plus the total count for paging."""
        finished = (
            ActiveTrip.user_id == user_id,
            ActiveTrip.status != TripStatus.ACTIVE,
        )
        total = await self.session.execute(
            select(func.count()).select_from(ActiveTrip).where(*finished)
        )
        result = await self.session.execute(
            select(ActiveTrip)
            .where(*finished)
            .order_by(ActiveTrip.start_time.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total.scalar() or 0
