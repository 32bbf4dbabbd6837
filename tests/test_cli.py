"""
Test Suite: Command Line Interface
==================================
"""

import asyncio

import pytest
from sqlalchemy import update
from typer.testing import CliRunner

from sessionguard import __version__
from sessionguard.cli import app
from sessionguard.core.settings import SessionSettings, get_settings
from sessionguard.data.models import SessionStatus, UserSessionModel
from sessionguard.data.postgres import build_engine, build_session_factory, create_tables
from sessionguard.sessions import RequestContext, SessionManager

runner = CliRunner()


@pytest.fixture
def db_url(tmp_path, monkeypatch):
    url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    get_settings.cache_clear()
    return url


def seed_session(url, username="alice") -> str:
    async def _seed():
        engine = build_engine(url)
        await create_tables(engine)
        manager = SessionManager(build_session_factory(engine), SessionSettings())
        created = await manager.create_session(
            {"username": username}, RequestContext(client_ip="10.0.0.5", user_agent="pytest")
        )
        await engine.dispose()
        return created.session_id

    return asyncio.run(_seed())


def load_session(url, session_id) -> UserSessionModel | None:
    async def _load():
        engine = build_engine(url)
        async with build_session_factory(engine)() as db:
            row = await db.get(UserSessionModel, session_id)
        await engine.dispose()
        return row

    return asyncio.run(_load())


def clear_expiry(url, session_id) -> None:
    async def _clear():
        engine = build_engine(url)
        async with build_session_factory(engine)() as db:
            async with db.begin():
                await db.execute(
                    update(UserSessionModel)
                    .where(UserSessionModel.session_id == session_id)
                    .values(expires_at=None)
                    .execution_options(synchronize_session=False)
                )
        await engine.dispose()

    asyncio.run(_clear())


class TestUtilityCommands:

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert f"SessionGuard v{__version__}" in result.output

    def test_check(self, db_url):
        result = runner.invoke(app, ["check"])
        assert result.exit_code == 0
        assert "Configuration Check" in result.output
        assert "SQLite" in result.output


class TestDatabaseCommands:

    def test_db_init_creates_schema(self, db_url, tmp_path):
        result = runner.invoke(app, ["db", "init"])

        assert result.exit_code == 0
        assert (tmp_path / "cli.db").exists()
        assert load_session(db_url, "missing") is None


class TestSessionCommands:

    def test_show(self, db_url):
        session_id = seed_session(db_url)

        result = runner.invoke(app, ["sessions", "show", session_id])

        assert result.exit_code == 0
        assert "Session Details" in result.output
        assert "alice" in result.output
        assert "Recent Activity" in result.output

    def test_show_unknown(self, db_url):
        seed_session(db_url)

        result = runner.invoke(app, ["sessions", "show", "0" * 64])

        assert result.exit_code == 1
        assert "Session not found" in result.output

    def test_terminate(self, db_url):
        session_id = seed_session(db_url)

        result = runner.invoke(app, ["sessions", "terminate", session_id])

        assert result.exit_code == 0
        assert "Session terminated" in result.output
        stored = load_session(db_url, session_id)
        assert stored.status == SessionStatus.LOGGED_OUT
        assert stored.logout_reason == "manual_cleanup"

    def test_terminate_unknown(self, db_url):
        seed_session(db_url)

        result = runner.invoke(app, ["sessions", "terminate", "0" * 64, "--reason", "admin_forced"])

        assert result.exit_code == 1

    def test_purge(self, db_url):
        seed_session(db_url)

        result = runner.invoke(app, ["sessions", "purge"])

        assert result.exit_code == 0
        assert "Session Cleanup" in result.output
        assert "Expired" in result.output

    def test_list(self, db_url):
        ended = seed_session(db_url, "alice")
        seed_session(db_url, "bob")
        runner.invoke(app, ["sessions", "terminate", ended])

        result = runner.invoke(app, ["sessions", "list", "--limit", "10"])

        assert result.exit_code == 0
        assert "Recent Sessions" in result.output
        assert "alice" in result.output
        assert "bob" in result.output
        assert "Summary" in result.output
        assert "logged_out" in result.output

    def test_backfill_expiry(self, db_url):
        session_id = seed_session(db_url)
        clear_expiry(db_url, session_id)

        result = runner.invoke(app, ["sessions", "backfill-expiry"])

        assert result.exit_code == 0
        assert "Absolute expiry set on 1 session(s)" in result.output
        assert load_session(db_url, session_id).expires_at is not None

    def test_analytics(self, db_url):
        seed_session(db_url, "alice")
        seed_session(db_url, "bob")

        result = runner.invoke(app, ["sessions", "analytics", "--hours", "24"])

        assert result.exit_code == 0
        assert "Top Users" in result.output
        assert "alice" in result.output
        assert "bob" in result.output
