"""Async database session management for SQLAlchemy 2.0+.

Two engines may exist side by side: the regular one used for reads and
quota updates, and the service engine bound to the privileged credential
that is only used to create missing account records. When no service URL
is configured both resolve to the same cached engine.
"""

from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from studyai.app.core.config import settings
from studyai.app.core.logging import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=4)
def get_async_engine(database_url: str | None = None) -> AsyncEngine:
    """Get or create the async database engine for a URL (cached singleton).

    Args:
        database_url: Optional database URL. Uses settings if not provided.

    Returns:
        AsyncEngine instance
    """
    url = database_url or settings.database_url

    if "sqlite" in url.lower():
        engine = create_async_engine(
            url,
            echo=False,
            pool_size=settings.db_sqlite_pool_size,
            max_overflow=settings.db_sqlite_max_overflow,
        )
        logger.info(
            f"Created SQLite async engine (pool_size={settings.db_sqlite_pool_size})"
        )
    else:
        engine = create_async_engine(
            url,
            echo=False,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            pool_pre_ping=settings.db_pool_pre_ping,
        )
        logger.info(
            f"Created PostgreSQL async engine (pool_size={settings.db_pool_size}, "
            f"max_overflow={settings.db_max_overflow})"
        )
    return engine


@lru_cache(maxsize=4)
def _session_maker(database_url: str) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=get_async_engine(database_url),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_async_session_maker() -> async_sessionmaker[AsyncSession]:
    """Session maker for the regular datastore credential."""
    return _session_maker(settings.database_url)


def get_service_session_maker() -> async_sessionmaker[AsyncSession]:
    """Session maker for the privileged datastore credential."""
    return _session_maker(settings.service_database_url)


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Async context manager for database sessions.

    Usage:
        async with get_async_session() as session:
            result = await session.execute(...)
    """
    async with get_async_session_maker()() as session:
        yield session


@asynccontextmanager
async def get_service_session() -> AsyncGenerator[AsyncSession, None]:
    """Like get_async_session, but with elevated privileges."""
    async with get_service_session_maker()() as session:
        yield session


async def close_async_engine() -> None:
    """Dispose every cached engine.

    Call this on application shutdown to release database connections.
    """
    for url in {settings.database_url, settings.service_database_url}:
        engine = get_async_engine(url)
        try:
            await engine.dispose()
        except RuntimeError:
            # Event loop mismatch - connection already closed or different loop
            logger.debug("Engine dispose encountered RuntimeError (event loop mismatch)")

    get_async_engine.cache_clear()
    _session_maker.cache_clear()
