# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Per-request identity signals.

The web layer hands the session manager a RequestContext rather than its
own request object. ``RequestContext.from_request`` builds one from a
Starlette/FastAPI request:

    @app.get("/protected")
    async def protected(request: Request):
        ctx = RequestContext.from_request(request)
        result = await manager.validate_session(request.cookies["sid"], ctx)
"""

from dataclasses import dataclass
from typing import Any

from starlette.requests import Request

from sessionguard_core.security.network import LOOPBACK_IPV4, normalize_ip

UNKNOWN_USER_AGENT = "Unknown"


@dataclass(frozen=True)
class RequestContext:
    """Network and client signals of one request."""

    client_ip: str = LOOPBACK_IPV4
    user_agent: str | None = None
    accept_language: str | None = None
    accept_encoding: str | None = None
    path: str | None = None
    request_id: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "client_ip", normalize_ip(self.client_ip) or LOOPBACK_IPV4)

    @property
    def effective_user_agent(self) -> str:
        """User agent as recorded on the session row."""
        return self.user_agent or UNKNOWN_USER_AGENT

    @property
    def endpoint(self) -> str:
        return self.path or "unknown"

    def headers_snapshot(self) -> dict[str, Any]:
        return {
            "user_agent": self.user_agent,
            "accept_language": self.accept_language,
            "accept_encoding": self.accept_encoding,
        }

    @classmethod
    def from_request(cls, request: Request, trust_forwarded: bool = True) -> "RequestContext":
        """
        Extract signals from a Starlette request.

        Client IP resolution order: first hop of X-Forwarded-For, X-Real-IP,
        the socket peer, then loopback. Forwarding headers are only honoured
        when ``trust_forwarded`` is set (i.e. behind a proxy you control).
        """
        headers = request.headers
        client_ip = None

        if trust_forwarded:
            forwarded = headers.get("x-forwarded-for")
            if forwarded:
                client_ip = forwarded.split(",")[0].strip() or None
            if not client_ip:
                client_ip = headers.get("x-real-ip") or None

        if not client_ip and request.client is not None:
            client_ip = request.client.host

        return cls(
            client_ip=client_ip or LOOPBACK_IPV4,
            user_agent=headers.get("user-agent"),
            accept_language=headers.get("accept-language"),
            accept_encoding=headers.get("accept-encoding"),
            path=request.url.path,
            request_id=headers.get("x-request-id"),
        )


__all__ = ["RequestContext", "UNKNOWN_USER_AGENT"]
