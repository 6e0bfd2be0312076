"""Async engine, sessions and the ``get_db`` dependency.

The engine is created lazily from settings so tests can swap ``DATABASE_URL``
before anything touches the database. Request handlers get a session through
``get_db``; background jobs such as the notification cleanup open their own
with ``session_scope``.
"""

import asyncio
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from blog_api.core.config import Settings, get_settings
from blog_api.core.logging import get_logger

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _engine_options(settings: Settings) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.db_echo, "pool_pre_ping": True}
    # SQLite has no server-side pool to size
    if not settings.database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=1800,
        )
    return options


def get_engine() -> AsyncEngine:
    global _engine

    if _engine is None:
        settings = get_settings()
        options = _engine_options(settings)
        _engine = create_async_engine(settings.database_url, **options)
        logger.info(
            "Database engine created",
            dialect=_engine.dialect.name,
            pool_size=options.get("pool_size"),
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """A session committed on success and rolled back on error.

    Services commit their own writes; this only settles whatever is left
    pending when the block ends.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with session_scope() as session:
        yield session


async def init_db() -> None:
    """Create missing tables. Deployed databases are migrated with Alembic instead."""
    from blog_api.db.models import Base

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized")


async def close_db() -> None:
    global _engine, _session_factory

    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("Database connections closed")


async def check_db_health(timeout: float = 5.0) -> bool:
    """Run ``SELECT 1`` within ``timeout`` seconds."""

    async def _ping() -> None:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))

    try:
        await asyncio.wait_for(_ping(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.error("Database health check timed out", timeout=timeout)
        return False
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        return False
    return True
