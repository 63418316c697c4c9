"""
Async SQLAlchemy engine and session factory.

Uses ``asyncpg`` as the PostgreSQL driver for non-blocking I/O.  Tables
live on a plain ``MetaData`` and the domain dataclasses are mapped onto
them imperatively (see ``models.py``), so the domain package never
imports SQLAlchemy.
"""

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import registry

from wheelshare.config import settings

metadata = MetaData()
mapper_registry = registry(metadata=metadata)

engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_size=20,
    max_overflow=10,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,  # writes reach the DB only at UnitOfWork.commit()
)
