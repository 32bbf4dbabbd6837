# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Session risk scoring.

Scores are integers in [0, 100]. The default policy is additive: a session
starts from a small base (administrative role, access from outside the
internal network) and every security event pushes it up by a fixed
increment per severity. Nothing decays the score. Deployments that want
decay or reset-on-reauth plug in their own ``RiskScorer``.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

from sessionguard_core.security.network import is_private_ip

MIN_RISK_SCORE = 0
MAX_RISK_SCORE = 100


class Severity(StrEnum):
    """Security event severity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskLevel(StrEnum):
    """Risk bucket of a score."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def clamp_score(score: int) -> int:
    return max(MIN_RISK_SCORE, min(MAX_RISK_SCORE, int(score)))


@dataclass(frozen=True)
class RiskThresholds:
    """Upper bounds (exclusive) of the low, medium and high buckets."""

    low: int = 25
    medium: int = 50
    high: int = 75

    @classmethod
    def from_settings(cls, settings) -> "RiskThresholds":
        return cls(
            low=settings.risk_low_threshold,
            medium=settings.risk_medium_threshold,
            high=settings.risk_high_threshold,
        )

    def level(self, score: int) -> RiskLevel:
        if score < self.low:
            return RiskLevel.LOW
        if score < self.medium:
            return RiskLevel.MEDIUM
        if score < self.high:
            return RiskLevel.HIGH
        return RiskLevel.CRITICAL

    def is_high_risk(self, score: int) -> bool:
        return score > self.high


def risk_level(score: int, thresholds: RiskThresholds | None = None) -> RiskLevel:
    """Bucket a score, with the default thresholds unless given others."""
    return (thresholds or RiskThresholds()).level(score)


@runtime_checkable
class RiskScorer(Protocol):
    """Strategy interface for session risk scoring."""

    def initial_score(self, role: str | None, client_ip: str | None) -> int: ...

    def recalculate(
        self, current_score: int, events: Iterable[Mapping[str, Any]]
    ) -> int: ...


class AdditiveRiskScorer:
    """
    Default scorer: fixed base terms plus a fixed increment per event.

    Scores only ever go up through ``recalculate``.
    """

    ADMIN_ROLE_RISK = 10
    EXTERNAL_NETWORK_RISK = 15

    SEVERITY_INCREMENTS = {
        Severity.LOW: 5,
        Severity.MEDIUM: 15,
        Severity.HIGH: 30,
        Severity.CRITICAL: 50,
    }

    def __init__(self, admin_roles: Iterable[str] = ("administrator", "admin")):
        self.admin_roles = frozenset(role.lower() for role in admin_roles)

    def initial_score(self, role: str | None, client_ip: str | None) -> int:
        risk = 0
        if role and role.lower() in self.admin_roles:
            risk += self.ADMIN_ROLE_RISK
        if not is_private_ip(client_ip):
            risk += self.EXTERNAL_NETWORK_RISK
        return clamp_score(risk)

    def recalculate(self, current_score: int, events: Iterable[Mapping[str, Any]]) -> int:
        risk = current_score or 0
        for event in events:
            severity = event.get("severity")
            try:
                risk += self.SEVERITY_INCREMENTS[Severity(severity)]
            except ValueError:
                # Unknown severities carry no weight
                continue
        return clamp_score(risk)


__all__ = [
    "Severity",
    "RiskLevel",
    "RiskThresholds",
    "risk_level",
    "RiskScorer",
    "AdditiveRiskScorer",
    "clamp_score",
    "MIN_RISK_SCORE",
    "MAX_RISK_SCORE",
]
