"""
Test Suite: Request Context and Lenient Storage Types
=====================================================
"""

import json
from datetime import UTC, datetime, timedelta, timezone

import pytest
from sqlalchemy import text
from starlette.requests import Request

from sessionguard.data.models import TERMINAL_STATUSES, SessionStatus
from sessionguard.data.postgres import build_engine
from sessionguard.data.types import JSONDict, JSONList, coerce_dict, coerce_list, ensure_utc
from sessionguard.sessions import RequestContext
from sessionguard_core import ConfigurationError


def make_request(headers=None, client=("198.51.100.4", 51000), path="/account"):
    scope = {
        "type": "http",
        "method": "GET",
        "scheme": "http",
        "server": ("testserver", 80),
        "root_path": "",
        "path": path,
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestRequestContext:

    def test_socket_peer(self):
        ctx = RequestContext.from_request(make_request({"User-Agent": "Mozilla/5.0"}))

        assert ctx.client_ip == "198.51.100.4"
        assert ctx.user_agent == "Mozilla/5.0"
        assert ctx.path == "/account"

    def test_forwarded_for_first_hop(self):
        request = make_request({"X-Forwarded-For": "203.0.113.9, 10.0.0.1", "X-Real-IP": "10.9.9.9"})
        assert RequestContext.from_request(request).client_ip == "203.0.113.9"

    def test_real_ip_fallback(self):
        request = make_request({"X-Real-IP": "203.0.113.10"})
        assert RequestContext.from_request(request).client_ip == "203.0.113.10"

    def test_forwarding_headers_ignored_when_untrusted(self):
        request = make_request({"X-Forwarded-For": "203.0.113.9"})
        ctx = RequestContext.from_request(request, trust_forwarded=False)
        assert ctx.client_ip == "198.51.100.4"

    def test_loopback_when_nothing_known(self):
        ctx = RequestContext.from_request(make_request(client=None))
        assert ctx.client_ip == "127.0.0.1"

    def test_addresses_normalized(self):
        assert RequestContext(client_ip="::1").client_ip == "127.0.0.1"
        assert RequestContext(client_ip="::ffff:10.0.0.5").client_ip == "10.0.0.5"
        assert RequestContext(client_ip="").client_ip == "127.0.0.1"

    def test_headers_captured(self):
        request = make_request({"Accept-Language": "de-DE", "Accept-Encoding": "gzip, br"})
        ctx = RequestContext.from_request(request)

        assert ctx.headers_snapshot() == {
            "user_agent": None,
            "accept_language": "de-DE",
            "accept_encoding": "gzip, br",
        }

    def test_defaults(self):
        ctx = RequestContext()
        assert ctx.effective_user_agent == "Unknown"
        assert ctx.endpoint == "unknown"
        assert ctx.request_id is None

    def test_request_id_header(self):
        ctx = RequestContext.from_request(make_request({"X-Request-ID": "req-123"}))
        assert ctx.request_id == "req-123"


class TestCoercion:

    def test_list_passthrough_is_copied(self):
        original = [{"a": 1}]
        coerced = coerce_list(original)
        assert coerced == original
        assert coerced is not original

    @pytest.mark.parametrize("value", [None, "", "not json", '{"a": 1}', 42, {}])
    def test_list_fallbacks(self, value):
        assert coerce_list(value) == []

    def test_list_from_legacy_string(self):
        assert coerce_list('[{"action": "session_created"}]') == [{"action": "session_created"}]

    @pytest.mark.parametrize("value", [None, "", "nope", "[1, 2]", 7, []])
    def test_dict_fallbacks(self, value):
        assert coerce_dict(value) == {}

    def test_dict_from_legacy_string(self):
        assert coerce_dict('{"path": "/old"}') == {"path": "/old"}

    def test_ensure_utc(self):
        naive = datetime(2026, 1, 1, 12, 0)
        assert ensure_utc(naive) == datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

        offset = datetime(2026, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        assert ensure_utc(offset) == datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        assert ensure_utc(offset).tzinfo == UTC

        assert ensure_utc(None) is None

    def test_type_decorators(self):
        assert JSONList().process_result_value('["x"]', None) == ["x"]
        assert JSONList().process_bind_param(None, None) == []
        assert JSONDict().process_result_value(None, None) is None
        assert JSONDict().process_result_value('{"k": 1}', None) == {"k": 1}


class TestStoreSetup:

    @pytest.mark.parametrize(
        "url", ["postgresql://app@db/sessions", "mysql+aiomysql://app@db/sessions", "sqlite:///plain.db"]
    )
    def test_sync_or_unknown_driver_rejected(self, url):
        with pytest.raises(ConfigurationError) as exc_info:
            build_engine(url)
        assert exc_info.value.details["setting"] == "DATABASE_URL"

    def test_malformed_url_rejected(self):
        with pytest.raises(ConfigurationError, match="Invalid database URL"):
            build_engine("not a database url")

    def test_terminal_statuses(self):
        assert SessionStatus.ACTIVE not in TERMINAL_STATUSES
        assert set(TERMINAL_STATUSES) == {s for s in SessionStatus if s is not SessionStatus.ACTIVE}
        assert all(s.is_terminal for s in TERMINAL_STATUSES)


class TestLegacyRows:

    @pytest.mark.asyncio
    async def test_string_encoded_columns_load_as_containers(self, engine, manager, clock, office_context):
        async with engine.begin() as conn:
            await conn.execute(
                text(
                    "INSERT INTO user_sessions (session_id, user_id, username, role, ip_address, "
                    "user_agent, login_time, last_activity, status, session_metadata, "
                    "security_events, activity_log, anomaly_flags, risk_score, version_id, "
                    "created_at, updated_at) VALUES (:sid, 'alice', 'alice', 'user', '10.0.0.5', "
                    "'Mozilla/5.0 (X11; Linux x86_64)', :ts, :ts, 'active', :metadata, NULL, "
                    ":activity, NULL, 0, 1, :ts, :ts)"
                ),
                {
                    "sid": "legacy" + "0" * 58,
                    "ts": "2026-01-01 12:00:00.000000",
                    "metadata": json.dumps(json.dumps({"path": "/old"})),
                    "activity": json.dumps(json.dumps([{"action": "session_created"}])),
                },
            )

        details = await manager.get_session_details("legacy" + "0" * 58)

        assert details.security_events == []
        assert details.anomaly_flags == []
        assert details.activity_log == [{"action": "session_created"}]
        assert details.metadata == {"path": "/old"}
        assert details.expires_at is None

    @pytest.mark.asyncio
    async def test_row_without_expiry_skips_absolute_check(self, engine, manager, clock, office_context):
        async with engine.begin() as conn:
            await conn.execute(
                text(
                    "INSERT INTO user_sessions (session_id, user_id, username, role, ip_address, "
                    "user_agent, login_time, last_activity, status, risk_score, version_id, "
                    "created_at, updated_at) VALUES (:sid, 'alice', 'alice', 'user', '10.0.0.5', "
                    "'Mozilla/5.0 (X11; Linux x86_64)', :ts, :ts, 'active', 0, 1, :ts, :ts)"
                ),
                {"sid": "legacy" + "1" * 58, "ts": "2026-01-01 12:00:00.000000"},
            )
        clock.advance(hours=30)

        result = await manager.validate_session("legacy" + "1" * 58, office_context)

        assert result.valid
        assert result.session.activity_log[-1]["action"] == "activity_update"
