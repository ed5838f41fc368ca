"""
Inkwell Backend: Relational Database Setup
===========================================

What:  Declarative base, async engine factory and session factory.
How:   `create_engine(settings)` builds an async engine with connection
       pooling; `create_session_factory(engine)` returns the sessionmaker the
       user repository borrows sessions from, one per operation.
Who:   Called by `Stores.connect()`; the Alembic env imports `Base`.

Connection Pooling Strategy:
    pool_size=20:      persistent connections for normal load
    max_overflow=10:   temporary connections for traffic spikes
    pool_pre_ping:     validates connections before use
    pool_recycle=3600: recycles connections every hour
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from inkwell.config import Settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object, which Alembic reads for --autogenerate.
    """
    pass


def create_engine(settings: Settings) -> AsyncEngine:
    """
    Build the async engine for `settings.database_url`.

    SQLite (used by the test-suite through aiosqlite) has no QueuePool, so
    the pool sizing options are only passed for server databases.
    """
    kwargs = {"echo": settings.log_level == "DEBUG"}
    if not settings.database_url.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return create_async_engine(settings.database_url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: returned ORM objects stay readable after the
    # session that loaded them is closed
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
