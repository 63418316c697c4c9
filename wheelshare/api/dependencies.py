"""FastAPI dependency injection helpers."""

from typing import AsyncIterator

from wheelshare.infrastructure.unit_of_work import (
    SqlAlchemyUnitOfWork,
    UnitOfWorkContext,
)


async def get_uow() -> AsyncIterator[SqlAlchemyUnitOfWork]:
    """Yield a unit of work; anything the handler did not commit is rolled back."""
    async with UnitOfWorkContext() as uow:
        yield uow
