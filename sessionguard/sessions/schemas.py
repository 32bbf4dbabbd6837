# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""Read-only, presentation-shaped views for operator tooling."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class SessionDetailView(BaseModel):
    """Projection of one session for debugging and support."""

    session_id: str
    username: str
    user_id: str
    role: str = "user"
    status: str
    login_time: str | None = None
    last_activity: str | None = None
    expires_at: str | None = None
    logout_time: str | None = None
    logout_reason: str | None = None
    ip_address: str
    user_agent: str | None = None
    device_fingerprint: str | None = None
    risk_score: int = 0
    risk_level: str
    anomaly_flags: list[dict[str, Any]] = Field(default_factory=list)
    security_events: list[dict[str, Any]] = Field(default_factory=list)
    activity_log: list[dict[str, Any]] = Field(default_factory=list)
    duration_minutes: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)


class RiskDistribution(BaseModel):
    low: int = 0
    medium: int = 0
    high: int = 0
    critical: int = 0


class SessionAnalytics(BaseModel):
    """Aggregate statistics over sessions created in a time window."""

    timeframe_hours: int
    generated_at: datetime
    total_sessions: int = 0
    active_sessions: int = 0
    average_session_duration_minutes: int = 0
    risk_distribution: RiskDistribution = Field(default_factory=RiskDistribution)
    top_users: dict[str, int] = Field(default_factory=dict)
    security_events: int = 0
    anomalies: int = 0
    unique_ips: int = 0
    unique_user_agents: int = 0


__all__ = ["SessionDetailView", "RiskDistribution", "SessionAnalytics"]
