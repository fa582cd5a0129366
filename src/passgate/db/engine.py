"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.
The engine is created lazily so importing the app (e.g. in tests that swap
the user store for an in-memory one) never needs a database driver.
"""

from functools import lru_cache
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from passgate.config import settings


@lru_cache
def get_engine() -> AsyncEngine:
    """Connection pool: min 5, max 20 connections. echo=True in debug."""
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_size=5,
        max_overflow=15,
    )


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    # Session factory: each request gets its own session.
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency — yields a session per request, auto-closes."""
    async with get_session_factory()() as session:
        try:
            yield session
        finally:
            await session.close()


async def dispose_engine() -> None:
    if get_engine.cache_info().currsize:
        await get_engine().dispose()


# ─── Alembic helpers ────────────────────────────────────


def migration_url(x_args: dict[str, str]) -> str:
    """`alembic -x dburl=...` wins over PASSGATE_DATABASE_URL."""
    return x_args.get("dburl") or settings.database_url


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    """Autogenerate filter: ignore tables that exist only in the database.

    The users table may live in a database shared with other services;
    their tables must not show up as drops in a generated migration.
    """
    if type_ == "table" and reflected and compare_to is None:
        return False
    return True
