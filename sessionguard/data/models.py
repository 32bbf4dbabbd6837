# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
SQLAlchemy ORM models.

Maps directly to the Alembic migration 001 (user_sessions).

Uses sa.JSON instead of postgresql.JSON for SQLite compatibility.
"""

from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .types import JSONDict, JSONList


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class SessionStatus(StrEnum):
    """Session lifecycle states. Everything but ACTIVE is terminal."""

    ACTIVE = "active"
    EXPIRED = "expired"
    LOGGED_OUT = "logged_out"
    TERMINATED = "terminated"

    @property
    def is_terminal(self) -> bool:
        return self is not SessionStatus.ACTIVE


TERMINAL_STATUSES = tuple(status for status in SessionStatus if status.is_terminal)


class UserSessionModel(Base):
    __tablename__ = "user_sessions"

    session_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False, default="user")

    # Identity signals recorded at creation, compared on every validation
    ip_address: Mapped[str] = mapped_column(String(45), nullable=False)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    device_fingerprint: Mapped[str | None] = mapped_column(String(64), nullable=True)

    login_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    last_activity: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    # Absolute expiry, never moved by activity. NULL only on legacy rows.
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    logout_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    logout_reason: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SessionStatus.ACTIVE)

    location_data: Mapped[dict | None] = mapped_column(JSONDict, nullable=True)
    session_metadata: Mapped[dict | None] = mapped_column(JSONDict, nullable=True)
    security_events: Mapped[list] = mapped_column(JSONList, nullable=True, default=list)
    activity_log: Mapped[list] = mapped_column(JSONList, nullable=True, default=list)
    anomaly_flags: Mapped[list] = mapped_column(JSONList, nullable=True, default=list)
    risk_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now()
    )

    # Compare-and-swap on every ORM flush: UPDATE ... WHERE version_id = :old
    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        Index("idx_user_sessions_user_id", "user_id"),
        Index("idx_user_sessions_username_status", "username", "status"),
        Index("idx_user_sessions_status", "status"),
        Index("idx_user_sessions_login_time", "login_time"),
        Index("idx_user_sessions_last_activity", "last_activity"),
        Index("idx_user_sessions_ip_address", "ip_address"),
        Index("idx_user_sessions_risk_score", "risk_score"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<UserSession {self.session_id[:8]} {self.username} ({self.status})>"
