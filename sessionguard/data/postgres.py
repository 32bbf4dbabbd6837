# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Database engine management.

Supports:
- PostgreSQL via asyncpg (production)
- SQLite via aiosqlite (development / single-node / tests)

The active backend is determined by DATABASE_URL in settings.
"""

import logging

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from sessionguard_core.exceptions.hierarchy import ConfigurationError

logger = logging.getLogger(__name__)

# Async drivers the store is tested against
SUPPORTED_DRIVERS = ("sqlite+aiosqlite", "postgresql+asyncpg")

# Module-level singletons
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _get_settings():
    """Lazy import to avoid circular deps with settings module."""
    from ..core.settings import get_settings

    return get_settings()


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def build_engine(url: str, echo: bool = False, pool_size: int = 10, max_overflow: int = 20):
    """Create an async engine with backend-appropriate pool options.

    Raises:
        ConfigurationError: the URL is malformed or names a driver other
            than aiosqlite or asyncpg
    """
    try:
        drivername = make_url(url).drivername
    except ArgumentError as e:
        raise ConfigurationError(
            "Invalid database URL", details={"setting": "DATABASE_URL"}
        ) from e
    if drivername not in SUPPORTED_DRIVERS:
        raise ConfigurationError(
            f"Unsupported database driver: {drivername}",
            details={"setting": "DATABASE_URL", "supported": list(SUPPORTED_DRIVERS)},
        )

    engine_kwargs: dict = {}

    if _is_sqlite(url):
        # SQLite: no pool, check_same_thread off
        engine_kwargs.update(
            connect_args={"check_same_thread": False},
            pool_pre_ping=False,
        )
    else:
        # PostgreSQL: connection pooling
        engine_kwargs.update(
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
        )

    return create_async_engine(url, echo=echo, **engine_kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create tables straight from ORM metadata."""
    from .models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_database(url: str | None = None, create_schema: bool | None = None) -> None:
    """Create the async engine and session factory.

    Called once during application startup (lifespan) or per CLI command.
    For SQLite, also creates tables directly from metadata
    since the Alembic migration targets PostgreSQL.
    """
    global _engine, _session_factory

    settings = _get_settings()
    url = url or settings.database.url

    if _is_sqlite(url):
        logger.info("Initializing SQLite database: %s", url)
    else:
        logger.info("Initializing PostgreSQL database")

    _engine = build_engine(
        url,
        echo=settings.database.echo,
        pool_size=settings.database.pool_size,
        max_overflow=settings.database.max_overflow,
    )
    _session_factory = build_session_factory(_engine)

    if create_schema is None:
        create_schema = _is_sqlite(url)
    if create_schema:
        await create_tables(_engine)
        logger.info("Tables created from ORM metadata")

    logger.info("Database initialized")


async def close_database() -> None:
    """Dispose the engine and release all connections.

    Called during application shutdown.
    """
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("Database connections closed")
    _engine = None
    _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the active session factory.

    Raises RuntimeError if init_database() hasn't been called.
    """
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _session_factory
