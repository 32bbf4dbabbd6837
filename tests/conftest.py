"""
SessionGuard Test Suite - Shared Fixtures
"""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from sessionguard.core.settings import SessionSettings, get_settings
from sessionguard.data.postgres import build_engine, build_session_factory, create_tables
from sessionguard.sessions import (
    RequestContext,
    SessionAnalyticsService,
    SessionCleanupService,
    SessionManager,
)

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Controllable clock; call it for the current time, ``advance`` to move it."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def isolate_settings(monkeypatch, tmp_path):
    """Every test reads settings from a clean environment."""
    for key in ("DATABASE_URL", "LOG_LEVEL", "LOG_FORMAT", "ENVIRONMENT"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_settings():
    return SessionSettings(
        retention_hours=24,
        max_concurrent_sessions=5,
        store_timeout_seconds=5.0,
        cleanup_interval_seconds=0.05,
    )


@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-backed SQLite store, fresh per test."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'sessions.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def manager(session_factory, session_settings, clock):
    return SessionManager(session_factory, session_settings, clock=clock)


@pytest.fixture
def cleanup(session_factory, session_settings, clock):
    return SessionCleanupService(session_factory, session_settings, clock=clock)


@pytest.fixture
def analytics(session_factory, session_settings, clock):
    return SessionAnalyticsService(session_factory, session_settings, clock=clock)


@pytest.fixture
def office_context():
    """A request from the internal network."""
    return RequestContext(
        client_ip="10.0.0.5",
        user_agent="Mozilla/5.0 (X11; Linux x86_64)",
        accept_language="en-US",
        accept_encoding="gzip",
        path="/dashboard",
    )


@pytest.fixture
def external_context():
    """A request from outside the internal network."""
    return RequestContext(
        client_ip="203.0.113.7",
        user_agent="Mozilla/5.0 (Macintosh)",
        accept_language="en-GB",
        accept_encoding="br",
        path="/login",
    )
