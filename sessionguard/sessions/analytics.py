# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""Read-only aggregate statistics over recently created sessions."""

import logging
from collections import Counter
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.settings import SessionSettings, get_settings
from ..data.models import SessionStatus
from ..data.repositories import repository_transaction
from ..data.types import coerce_list, ensure_utc
from .manager import Clock
from .risk import RiskThresholds
from .schemas import RiskDistribution, SessionAnalytics

logger = logging.getLogger(__name__)


class SessionAnalyticsService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: SessionSettings | None = None,
        *,
        clock: Clock | None = None,
    ):
        self.session_factory = session_factory
        self.settings = settings or get_settings().sessions
        self.clock = clock or (lambda: datetime.now(UTC))
        self.thresholds = RiskThresholds.from_settings(self.settings)

    async def get_session_analytics(self, timeframe_hours: int = 24) -> SessionAnalytics:
        """
        Aggregate sessions whose login_time falls inside the window.

        Durations run to logout_time for terminal sessions and to now for
        active ones.

        Raises:
            ValueError: timeframe_hours is not positive
            SessionStoreError: the store failed
        """
        if timeframe_hours <= 0:
            raise ValueError("timeframe_hours must be positive")

        now = self.clock()
        since = now - timedelta(hours=timeframe_hours)

        async with repository_transaction(
            self.session_factory,
            "get_session_analytics",
            self.settings.store_timeout_seconds,
        ) as repo:
            sessions = await repo.list_created_since(since)

        distribution = RiskDistribution()
        users: Counter[str] = Counter()
        ips: set[str] = set()
        user_agents: set[str] = set()
        active = 0
        security_events = 0
        anomalies = 0
        total_duration = timedelta()

        for session in sessions:
            login_time = ensure_utc(session.login_time)
            if session.status == SessionStatus.ACTIVE:
                active += 1
                end = now
            else:
                end = ensure_utc(session.logout_time) or now
            if login_time is not None:
                total_duration += end - login_time

            level = self.thresholds.level(session.risk_score or 0)
            setattr(distribution, str(level), getattr(distribution, str(level)) + 1)

            users[session.username] += 1
            security_events += len(coerce_list(session.security_events))
            anomalies += len(coerce_list(session.anomaly_flags))
            if session.ip_address:
                ips.add(session.ip_address)
            if session.user_agent:
                user_agents.add(session.user_agent)

        total = len(sessions)
        average_minutes = (
            round(total_duration.total_seconds() / 60 / total) if total else 0
        )

        logger.debug(
            "Computed session analytics",
            extra={"timeframe_hours": timeframe_hours, "total_sessions": total},
        )

        return SessionAnalytics(
            timeframe_hours=timeframe_hours,
            generated_at=now,
            total_sessions=total,
            active_sessions=active,
            average_session_duration_minutes=average_minutes,
            risk_distribution=distribution,
            top_users=dict(users.most_common()),
            security_events=security_events,
            anomalies=anomalies,
            unique_ips=len(ips),
            unique_user_agents=len(user_agents),
        )


__all__ = ["SessionAnalyticsService"]
