"""
Test Suite: Configuration and Observability
===========================================
"""

import json
import logging
from datetime import timedelta

import pytest
from pydantic import ValidationError

from sessionguard.core.settings import Settings, SessionSettings, get_settings
from sessionguard.observability import (
    JSONFormatter,
    HumanFormatter,
    get_logger,
    get_request_context,
    mask_sensitive_data,
    request_context,
)
from sessionguard.observability.logging import AuditLogger, session_ref


class TestSessionSettings:

    def test_defaults(self):
        settings = SessionSettings()

        assert settings.retention_hours == 24
        assert settings.retention_window == timedelta(hours=24)
        assert settings.max_concurrent_sessions == 5
        assert settings.activity_log_limit == 100
        assert settings.detail_activity_limit == 50
        assert settings.cleanup_interval_seconds == 300
        assert settings.max_update_retries == 3
        assert settings.terminated_reasons == []
        assert (
            settings.risk_low_threshold,
            settings.risk_medium_threshold,
            settings.risk_high_threshold,
        ) == (25, 50, 75)

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SESSION_MAX_CONCURRENT_SESSIONS", "3")
        monkeypatch.setenv("SESSION_RETENTION_HOURS", "12")

        settings = SessionSettings()

        assert settings.max_concurrent_sessions == 3
        assert settings.retention_window == timedelta(hours=12)

    def test_thresholds_must_increase(self):
        with pytest.raises(ValidationError):
            SessionSettings(risk_low_threshold=50, risk_medium_threshold=50)

    def test_names_normalized(self):
        settings = SessionSettings(admin_roles=[" Admin ", "ROOT", ""], terminated_reasons=["Admin_Forced"])

        assert settings.admin_roles == ["admin", "root"]
        assert settings.terminated_reasons == ["admin_forced"]

    def test_cap_must_be_positive(self):
        with pytest.raises(ValidationError):
            SessionSettings(max_concurrent_sessions=0)


class TestSettings:

    def test_database_url_from_environment(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@db/sessions")
        assert Settings().database.url == "postgresql+asyncpg://u:p@db/sessions"

    def test_default_database_is_sqlite(self):
        assert Settings().database.url.startswith("sqlite+aiosqlite://")

    def test_log_settings_validated(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert Settings().observability.level == "DEBUG"

        monkeypatch.setenv("LOG_LEVEL", "loud")
        with pytest.raises(ValidationError):
            Settings()

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_environment_flags(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        settings = Settings()
        assert settings.is_production
        assert not settings.is_development


class TestMasking:

    def test_session_ids_redacted(self):
        masked = mask_sensitive_data({"session_id": "abc", "nested": {"password": "x"}, "user": "alice"})
        assert masked == {"session_id": "[REDACTED]", "nested": {"password": "[REDACTED]"}, "user": "alice"}

    def test_bearer_tokens_truncated(self):
        masked = mask_sensitive_data(["Bearer abcdefghijklmnopqrstuvwxyz"])
        assert masked == ["Bearer a...[REDACTED]"]

    def test_session_ref(self):
        assert session_ref("0123456789abcdef") == "01234567"
        assert session_ref(None) == "-"


def _record(msg="Session created", **extra):
    record = logging.LogRecord("sessionguard.test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:

    def test_json_formatter_includes_extras_and_context(self):
        with request_context(request_id="req-123", username="alice"):
            payload = json.loads(
                JSONFormatter().format(
                    _record(session="01234567", session_id="secret-id", risk_score=15)
                )
            )

        assert payload["message"] == "Session created"
        assert payload["level"] == "INFO"
        assert payload["request_id"] == "req-123"
        assert payload["username"] == "alice"
        assert payload["extra"]["session"] == "01234567"
        assert payload["extra"]["risk_score"] == 15
        assert payload["extra"]["session_id"] == "[REDACTED]"

    def test_context_logger_injects_request_context(self, caplog):
        logger = get_logger("sessionguard.test.context")

        with caplog.at_level("INFO", logger="sessionguard.test.context"):
            with request_context(request_id="req-9"):
                logger.info("Sweep finished", extra={"expired": 3})

        record = caplog.records[-1]
        assert record.request_id == "req-9"
        assert record.expired == 3
        assert not hasattr(record, "username")

    def test_human_formatter(self):
        line = HumanFormatter(use_colors=False).format(_record(username_hint="bob"))
        assert "INFO" in line
        assert "Session created" in line
        assert "username_hint=bob" in line


class TestAuditLogger:

    def test_audit_event_shape(self, caplog):
        audit = AuditLogger("sessionguard.audit.test")

        with caplog.at_level("INFO", logger="sessionguard.audit.test"):
            audit.terminate("session", "01234567", {"reason": "user_logout"})

        record = caplog.records[-1]
        assert record.getMessage() == "AUDIT: terminate session"
        assert record.action == "terminate"
        assert record.resource_id == "01234567"
        assert record.details == {"reason": "user_logout"}


class TestRequestContextScope:

    def test_nested_blocks_restore_previous_values(self):
        with request_context(request_id="outer"):
            with request_context(username="bob"):
                assert get_request_context() == {"request_id": "outer", "username": "bob"}
            assert get_request_context() == {"request_id": "outer", "username": None}

        assert get_request_context() == {"request_id": None, "username": None}

    def test_context_reset_when_block_raises(self):
        with pytest.raises(RuntimeError):
            with request_context(request_id="req-1", username="alice"):
                raise RuntimeError("boom")

        assert get_request_context() == {"request_id": None, "username": None}
