# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Security checks run on every session validation.

The engine compares the identity signals recorded when the session was
issued with the signals of the current request and reports drift as typed
events. It never touches the session itself.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from ..data.models import UserSessionModel
from .context import RequestContext
from .risk import Severity


class SecurityEventType(StrEnum):
    IP_CHANGE = "ip_change"
    USER_AGENT_CHANGE = "user_agent_change"


@dataclass(frozen=True)
class SecurityEvent:
    """One detected security signal."""

    timestamp: datetime
    type: SecurityEventType
    severity: Severity
    details: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "type": str(self.type),
            "severity": str(self.severity),
            "details": self.details,
        }


@dataclass
class SecurityCheckResult:
    """Events and anomalies produced for one request."""

    events: list[dict[str, Any]] = field(default_factory=list)
    anomalies: list[dict[str, Any]] = field(default_factory=list)

    @property
    def has_findings(self) -> bool:
        return bool(self.events or self.anomalies)


class SecurityCheckEngine:
    """Identity drift detection: client address and user agent."""

    def check(
        self,
        session: UserSessionModel,
        context: RequestContext,
        now: datetime,
    ) -> SecurityCheckResult:
        events: list[SecurityEvent] = []

        if session.ip_address != context.client_ip:
            events.append(
                SecurityEvent(
                    timestamp=now,
                    type=SecurityEventType.IP_CHANGE,
                    severity=Severity.MEDIUM,
                    details=f"IP changed from {session.ip_address} to {context.client_ip}",
                )
            )

        if session.user_agent != context.effective_user_agent:
            events.append(
                SecurityEvent(
                    timestamp=now,
                    type=SecurityEventType.USER_AGENT_CHANGE,
                    severity=Severity.LOW,
                    details="User agent string changed during session",
                )
            )

        return SecurityCheckResult(
            events=[event.to_dict() for event in events],
            anomalies=self.detect_anomalies(session, context, now),
        )

    def detect_anomalies(
        self,
        session: UserSessionModel,
        context: RequestContext,
        now: datetime,
    ) -> list[dict[str, Any]]:
        """Behavioural heuristics beyond identity drift. None enabled yet."""
        return []


__all__ = [
    "SecurityEventType",
    "SecurityEvent",
    "SecurityCheckResult",
    "SecurityCheckEngine",
]
