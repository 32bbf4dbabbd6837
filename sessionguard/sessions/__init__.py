# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Session security services.

- SessionManager: create / validate / terminate / inspect sessions
- SessionCleanupService: idle expiry and retention purge
- SessionAnalyticsService: aggregate statistics

Usage:
    from sessionguard.data import init_database, get_session_factory
    from sessionguard.sessions import init_session_services, RequestContext

    await init_database()
    services = init_session_services(get_session_factory())
    services.cleanup.start()

    created = await services.manager.create_session(
        {"username": "alice", "role": "user"},
        RequestContext(client_ip="10.0.0.5", user_agent="Mozilla/5.0"),
    )
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.settings import SessionSettings, get_settings
from .analytics import SessionAnalyticsService
from .checks import SecurityCheckEngine, SecurityCheckResult, SecurityEvent, SecurityEventType
from .cleanup import PurgeResult, SessionCleanupService
from .context import UNKNOWN_USER_AGENT, RequestContext
from .manager import (
    CONCURRENT_LIMIT_REASON,
    DEFAULT_LOGOUT_REASON,
    SESSION_EXPIRED,
    SESSION_NOT_FOUND,
    VALIDATION_ERROR,
    Clock,
    CreatedSession,
    SessionManager,
    UserIdentity,
    ValidationResult,
    generate_session_id,
)
from .risk import (
    MAX_RISK_SCORE,
    MIN_RISK_SCORE,
    AdditiveRiskScorer,
    RiskLevel,
    RiskScorer,
    RiskThresholds,
    Severity,
    clamp_score,
    risk_level,
)
from .schemas import RiskDistribution, SessionAnalytics, SessionDetailView


@dataclass
class SessionServices:
    """The three session services sharing one store and clock."""

    manager: SessionManager
    cleanup: SessionCleanupService
    analytics: SessionAnalyticsService


# Global services instance
_services: SessionServices | None = None


def init_session_services(
    session_factory: async_sessionmaker[AsyncSession],
    settings: SessionSettings | None = None,
    clock: Clock | None = None,
    risk_scorer: RiskScorer | None = None,
) -> SessionServices:
    """Build and register the process-wide session services."""
    global _services
    settings = settings or get_settings().sessions
    _services = SessionServices(
        manager=SessionManager(session_factory, settings, risk_scorer=risk_scorer, clock=clock),
        cleanup=SessionCleanupService(session_factory, settings, clock=clock),
        analytics=SessionAnalyticsService(session_factory, settings, clock=clock),
    )
    return _services


def get_session_services() -> SessionServices:
    """Get the registered session services."""
    if _services is None:
        raise RuntimeError("Session services not initialized. Call init_session_services() first.")
    return _services


async def reset_session_services() -> None:
    """Stop the scheduler and drop the registered services."""
    global _services
    if _services is not None:
        await _services.cleanup.stop()
    _services = None


__all__ = [
    # Wiring
    "SessionServices",
    "init_session_services",
    "get_session_services",
    "reset_session_services",
    # Manager
    "SessionManager",
    "UserIdentity",
    "CreatedSession",
    "ValidationResult",
    "generate_session_id",
    "SESSION_NOT_FOUND",
    "SESSION_EXPIRED",
    "VALIDATION_ERROR",
    "DEFAULT_LOGOUT_REASON",
    "CONCURRENT_LIMIT_REASON",
    # Request context
    "RequestContext",
    "UNKNOWN_USER_AGENT",
    # Risk
    "Severity",
    "RiskLevel",
    "RiskThresholds",
    "risk_level",
    "RiskScorer",
    "AdditiveRiskScorer",
    "clamp_score",
    "MIN_RISK_SCORE",
    "MAX_RISK_SCORE",
    # Security checks
    "SecurityCheckEngine",
    "SecurityCheckResult",
    "SecurityEvent",
    "SecurityEventType",
    # Maintenance / reporting
    "SessionCleanupService",
    "PurgeResult",
    "SessionAnalyticsService",
    "SessionAnalytics",
    "RiskDistribution",
    "SessionDetailView",
]
