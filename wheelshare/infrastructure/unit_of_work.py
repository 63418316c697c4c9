"""
Unit of Work -- one transactional boundary per orchestration operation.

All repositories share a single ``AsyncSession``.  Handlers mutate the
loaded aggregates in memory and call ``commit()`` exactly once; if the
flush violates a partial unique index or a version check, the whole unit
is rolled back and ``ConcurrencyConflict`` is raised so the handler can
answer with the matching domain error.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from .database import async_session_factory
from .repositories import (
    PaymentMethodRepository,
    ReceiptRepository,
    ReservationRepository,
    TripRepository,
    UserRepository,
    VehicleRepository,
    WalletTransactionRepository,
)

logger = logging.getLogger(__name__)


class ConcurrencyConflict(Exception):
    """A competing transaction changed the same rows first."""

    def __init__(self, detail: str, constraint: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        self.constraint = constraint

    def involves(self, *fragments: str) -> bool:
        text = f"{self.constraint or ''} {self.detail}"
        return any(fragment in text for fragment in fragments)


class SqlAlchemyUnitOfWork:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserRepository(session)
        self.payment_methods = PaymentMethodRepository(session)
        self.wallet_transactions = WalletTransactionRepository(session)
        self.vehicles = VehicleRepository(session)
        self.reservations = ReservationRepository(session)
        self.trips = TripRepository(session)
        self.receipts = ReceiptRepository(session)

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.warning("Commit rejected by constraint: %s", exc.orig)
            raise ConcurrencyConflict(str(exc.orig), _constraint_name(exc)) from exc
        except StaleDataError as exc:
            await self.session.rollback()
            logger.warning("Commit rejected by version check: %s", exc)
            raise ConcurrencyConflict(str(exc)) from exc

    async def rollback(self) -> None:
        await self.session.rollback()


def _constraint_name(exc: IntegrityError) -> Optional[str]:
    # asyncpg exposes the violated index name; SQLite only names the columns
    return getattr(getattr(exc.orig, "__cause__", None), "constraint_name", None)


class UnitOfWorkContext:
    """``async with`` helper: opens a session and closes it on exit.

    Closing ends any open transaction, so uncommitted changes are discarded,
    but loaded objects are detached with their state intact and stay
    readable after the block.
    """

    def __init__(self, session_factory=async_session_factory):
        self._session_factory = session_factory
        self._session: Optional[AsyncSession] = None

    async def __aenter__(self) -> SqlAlchemyUnitOfWork:
        self._session = self._session_factory()
        return SqlAlchemyUnitOfWork(self._session)

    async def __aexit__(self, *exc_info) -> None:
        assert self._session is not None
        await self._session.close()
