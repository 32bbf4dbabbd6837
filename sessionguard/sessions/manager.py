# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Session Lifecycle Manager

Owns the session state machine:

    active ──> expired | logged_out | terminated    (all terminal)

Operations:
- create_session: issue a session, evicting the least recently used
  active session of the user when the concurrency cap is reached
- validate_session: check status and absolute expiry, run the security
  checks, record activity and update the risk score
- terminate_session: idempotent transition into a terminal state
- get_session_details: read-only projection for operators
- list_recent_sessions: newest sessions in any status, for operators

Every call round-trips to the store; nothing is cached in memory.
Writes to one session are serialized in-process with a per-session
asyncio.Lock, and guarded across processes by the ``version_id``
compare-and-swap on the row. A stale write re-reads and retries.

Usage:
    manager = SessionManager(get_session_factory())

    created = await manager.create_session(
        UserIdentity(username="alice"),
        RequestContext.from_request(request),
    )
    result = await manager.validate_session(created.session_id, ctx)
    if not result.valid:
        ...  # redirect to login
"""

import asyncio
import secrets
import weakref
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from sessionguard_core.exceptions.hierarchy import (
    InvalidIdentityError,
    SessionConflictError,
    SessionCreationError,
    SessionStoreError,
)
from sessionguard_core.security.fingerprint import generate_device_fingerprint

from ..core.settings import SessionSettings, get_settings
from ..data.models import SessionStatus, UserSessionModel
from ..data.repositories import repository_transaction
from ..data.types import coerce_dict, coerce_list, ensure_utc
from ..observability.logging import audit_logger, get_logger, request_context, session_ref
from .checks import SecurityCheckEngine, SecurityCheckResult
from .context import RequestContext
from .risk import AdditiveRiskScorer, RiskScorer, RiskThresholds, clamp_score
from .schemas import SessionDetailView

logger = get_logger(__name__)

T = TypeVar("T")

Clock = Callable[[], datetime]

SESSION_ID_BYTES = 32  # 256 bits

# Validation failure reasons
SESSION_NOT_FOUND = "Session not found"
SESSION_EXPIRED = "Session expired"
VALIDATION_ERROR = "Validation error"

# Termination reasons
DEFAULT_LOGOUT_REASON = "user_logout"
CONCURRENT_LIMIT_REASON = "concurrent_limit_exceeded"
EXPIRY_REASONS = frozenset({"timeout", "expired"})


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _isoformat(value: datetime | None) -> str | None:
    value = ensure_utc(value)
    return value.isoformat() if value else None


def generate_session_id() -> str:
    """64 hex chars from a CSPRNG."""
    return secrets.token_hex(SESSION_ID_BYTES)


# ============================================================
# INPUT / RESULT TYPES
# ============================================================


@dataclass
class UserIdentity:
    """Identity snapshot recorded on the session at creation."""

    username: str
    user_id: str | None = None
    role: str | None = None

    def __post_init__(self):
        username = (self.username or "").strip()
        if not username:
            raise InvalidIdentityError(
                "A username is required to create a session", field="username"
            )
        self.username = username
        self.user_id = self.user_id or username
        self.role = self.role or "user"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "UserIdentity":
        """Accept the web layer's dict (``username``, ``user_id``/``userId``, ``role``)."""
        user_id = data.get("user_id", data.get("userId"))
        return cls(
            username=data.get("username") or "",
            user_id=str(user_id) if user_id is not None else None,
            role=data.get("role"),
        )


@dataclass
class CreatedSession:
    session_id: str
    session: UserSessionModel
    expires_at: datetime


@dataclass
class ValidationResult:
    valid: bool
    reason: str | None = None
    session: UserSessionModel | None = None
    security_status: SecurityCheckResult | None = None

    @classmethod
    def denied(cls, reason: str) -> "ValidationResult":
        return cls(valid=False, reason=reason)


# ============================================================
# SESSION MANAGER
# ============================================================


class SessionManager:
    """
    Issues, validates and retires sessions.

    Args:
        session_factory: async_sessionmaker bound to the session store
        settings: Session settings (defaults to the process settings)
        risk_scorer: Scoring strategy (defaults to AdditiveRiskScorer)
        check_engine: Security check engine
        clock: Zero-arg callable returning an aware UTC datetime
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: SessionSettings | None = None,
        *,
        risk_scorer: RiskScorer | None = None,
        check_engine: SecurityCheckEngine | None = None,
        clock: Clock | None = None,
    ):
        self.session_factory = session_factory
        self.settings = settings or get_settings().sessions
        self.risk_scorer = risk_scorer or AdditiveRiskScorer(self.settings.admin_roles)
        self.check_engine = check_engine or SecurityCheckEngine()
        self.clock = clock or _utcnow
        self.thresholds = RiskThresholds.from_settings(self.settings)
        self._terminated_reasons = frozenset(self.settings.terminated_reasons)

        # Locks live only while someone holds or waits on them
        self._session_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._user_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    # --------------------------------------------------------
    # STORE ACCESS
    # --------------------------------------------------------

    @staticmethod
    def _lock_for(registry: weakref.WeakValueDictionary, key: str) -> asyncio.Lock:
        lock = registry.get(key)
        if lock is None:
            lock = asyncio.Lock()
            registry[key] = lock
        return lock

    def _transaction(self, operation: str):
        return repository_transaction(
            self.session_factory, operation, self.settings.store_timeout_seconds
        )

    async def _with_retries(
        self,
        operation: str,
        session_id: str,
        attempt: Callable[[], Awaitable[T]],
    ) -> T:
        attempts = self.settings.max_update_retries
        for number in range(1, attempts + 1):
            try:
                return await attempt()
            except StaleDataError:
                logger.warning(
                    "Concurrent session update detected",
                    extra={
                        "session": session_ref(session_id),
                        "operation": operation,
                        "attempt": number,
                    },
                )
        raise SessionConflictError(session_ref(session_id), attempts, operation=operation)

    # --------------------------------------------------------
    # STATE TRANSITIONS
    # --------------------------------------------------------

    def status_for_reason(self, reason: str | None) -> SessionStatus:
        """Terminal status a termination reason lands in."""
        normalized = (reason or "").strip().lower()
        if normalized in EXPIRY_REASONS:
            return SessionStatus.EXPIRED
        if normalized in self._terminated_reasons:
            return SessionStatus.TERMINATED
        return SessionStatus.LOGGED_OUT

    def _trim_activity(self, entries: list) -> list:
        return entries[-self.settings.activity_log_limit :]

    def _apply_termination(self, session: UserSessionModel, reason: str, now: datetime) -> int:
        """Move an active row into its terminal state. Returns duration in ms."""
        login_time = ensure_utc(session.login_time)
        duration_ms = int((now - login_time).total_seconds() * 1000) if login_time else 0

        activity_log = coerce_list(session.activity_log)
        activity_log.append(
            {
                "timestamp": now.isoformat(),
                "action": "session_terminated",
                "reason": reason,
                "duration_ms": duration_ms,
            }
        )

        session.logout_time = now
        session.logout_reason = reason
        session.status = self.status_for_reason(reason)
        session.activity_log = self._trim_activity(activity_log)
        session.updated_at = now
        return duration_ms

    def _apply_activity(
        self,
        session: UserSessionModel,
        context: RequestContext,
        security: SecurityCheckResult,
        now: datetime,
    ) -> None:
        entry: dict[str, Any] = {
            "timestamp": now.isoformat(),
            "action": "activity_update",
            "ip_address": context.client_ip,
            "user_agent": context.user_agent,
            "endpoint": context.endpoint,
        }

        security_events = coerce_list(session.security_events)
        anomaly_flags = coerce_list(session.anomaly_flags)

        if security.events:
            security_events.extend(security.events)
            entry["security_events"] = security.events
        if security.anomalies:
            anomaly_flags.extend(security.anomalies)

        activity_log = coerce_list(session.activity_log)
        activity_log.append(entry)

        last_activity = ensure_utc(session.last_activity)
        session.last_activity = max(now, last_activity) if last_activity else now
        session.security_events = security_events
        session.anomaly_flags = anomaly_flags
        session.activity_log = self._trim_activity(activity_log)
        session.risk_score = clamp_score(
            self.risk_scorer.recalculate(session.risk_score or 0, security.events)
        )
        session.updated_at = now

    # --------------------------------------------------------
    # CREATE
    # --------------------------------------------------------

    async def create_session(
        self,
        identity: UserIdentity | Mapping[str, Any],
        context: RequestContext,
    ) -> CreatedSession:
        """
        Issue a new session.

        Raises:
            InvalidIdentityError: no username supplied
            SessionCreationError: the store failed; no session was issued
        """
        if not isinstance(identity, UserIdentity):
            identity = UserIdentity.from_mapping(identity)

        with request_context(request_id=context.request_id, username=identity.username):
            return await self._create(identity, context)

    async def _create(self, identity: UserIdentity, context: RequestContext) -> CreatedSession:
        async with self._lock_for(self._user_locks, identity.username):
            try:
                await self.enforce_concurrent_session_limit(identity.username)

                now = self.clock()
                expires_at = now + self.settings.retention_window
                record = UserSessionModel(
                    session_id=generate_session_id(),
                    user_id=identity.user_id,
                    username=identity.username,
                    role=identity.role,
                    ip_address=context.client_ip,
                    user_agent=context.effective_user_agent,
                    device_fingerprint=generate_device_fingerprint(
                        context.user_agent,
                        context.accept_language,
                        context.accept_encoding,
                        context.client_ip,
                    ),
                    login_time=now,
                    last_activity=now,
                    expires_at=expires_at,
                    status=SessionStatus.ACTIVE,
                    location_data=None,
                    session_metadata={
                        "collected_at": now.isoformat(),
                        "headers": context.headers_snapshot(),
                        "path": context.path,
                        "location": None,
                    },
                    security_events=[],
                    activity_log=[
                        {
                            "timestamp": now.isoformat(),
                            "action": "session_created",
                            "details": "User session initialized",
                            "ip_address": context.client_ip,
                        }
                    ],
                    anomaly_flags=[],
                    risk_score=clamp_score(
                        self.risk_scorer.initial_score(identity.role, context.client_ip)
                    ),
                    created_at=now,
                    updated_at=now,
                )

                async with self._transaction("create_session") as repo:
                    await repo.add(record)

            except SessionStoreError as e:
                logger.error(
                    "Failed to create session",
                    extra={"username": identity.username, "error": e.message},
                )
                raise SessionCreationError(
                    f"Failed to create session for {identity.username}",
                    operation="create_session",
                    details=dict(e.details),
                ) from e

        ref = session_ref(record.session_id)
        logger.info(
            "Session created",
            extra={
                "session": ref,
                "username": record.username,
                "ip_address": record.ip_address,
                "risk_score": record.risk_score,
                "device_fingerprint": record.device_fingerprint,
            },
        )
        audit_logger.create(
            "session",
            ref,
            {"username": record.username, "role": record.role, "risk_score": record.risk_score},
        )

        return CreatedSession(
            session_id=record.session_id,
            session=record,
            expires_at=expires_at,
        )

    async def enforce_concurrent_session_limit(self, username: str) -> int:
        """
        Make room for one more active session for ``username``.

        Evicts the active sessions with the oldest last_activity until the
        count is below the cap. Returns the number of sessions evicted.
        """
        async with self._transaction("enforce_concurrent_session_limit") as repo:
            active = await repo.count_active_by_username(username)
            excess = active - self.settings.max_concurrent_sessions + 1
            if excess <= 0:
                return 0
            victims = [
                s.session_id
                for s in await repo.list_oldest_active_by_username(username, limit=excess)
            ]

        evicted = 0
        for victim_id in victims:
            if await self.terminate_session(victim_id, CONCURRENT_LIMIT_REASON):
                evicted += 1

        logger.info(
            "Concurrent session limit reached, evicted oldest sessions",
            extra={
                "username": username,
                "active_sessions": active,
                "limit": self.settings.max_concurrent_sessions,
                "evicted": evicted,
            },
        )
        return evicted

    # --------------------------------------------------------
    # VALIDATE
    # --------------------------------------------------------

    async def validate_session(self, session_id: str, context: RequestContext) -> ValidationResult:
        """
        Validate a session for the current request and record the activity.

        Never raises for an unusable session; store failures fail closed
        with reason "Validation error".
        """
        if not session_id:
            return ValidationResult.denied(SESSION_NOT_FOUND)

        with request_context(request_id=context.request_id):
            try:
                async with self._lock_for(self._session_locks, session_id):
                    return await self._with_retries(
                        "validate_session",
                        session_id,
                        lambda: self._validate_once(session_id, context),
                    )
            except Exception as e:
                logger.error(
                    "Session validation failed",
                    extra={"session": session_ref(session_id), "error": str(e)},
                    exc_info=True,
                )
                return ValidationResult.denied(VALIDATION_ERROR)

    async def _validate_once(self, session_id: str, context: RequestContext) -> ValidationResult:
        expired_after_ms: int | None = None
        security: SecurityCheckResult | None = None

        async with self._transaction("validate_session") as repo:
            session = await repo.get_by_id(session_id)
            if session is None:
                return ValidationResult.denied(SESSION_NOT_FOUND)

            if not session.is_active:
                return ValidationResult.denied(f"Session status is {session.status}")

            now = self.clock()
            expires_at = ensure_utc(session.expires_at)
            if expires_at is not None and now >= expires_at:
                expired_after_ms = self._apply_termination(session, "expired", now)
            else:
                security = self.check_engine.check(session, context, now)
                self._apply_activity(session, context, security, now)

        ref = session_ref(session_id)

        if expired_after_ms is not None:
            logger.info(
                "Session expired",
                extra={
                    "session": ref,
                    "username": session.username,
                    "duration_minutes": round(expired_after_ms / 60000),
                },
            )
            audit_logger.terminate("session", ref, {"reason": "expired"})
            return ValidationResult.denied(SESSION_EXPIRED)

        if self.thresholds.is_high_risk(session.risk_score):
            logger.warning(
                "High-risk session activity detected",
                extra={
                    "session": ref,
                    "username": session.username,
                    "risk_score": session.risk_score,
                    "recent_events": security.events,
                },
            )

        return ValidationResult(valid=True, session=session, security_status=security)

    # --------------------------------------------------------
    # TERMINATE
    # --------------------------------------------------------

    async def terminate_session(self, session_id: str, reason: str = DEFAULT_LOGOUT_REASON) -> bool:
        """
        Retire a session.

        Returns False only when the session does not exist. Terminating a
        session that is already terminal returns True and leaves its
        logout fields untouched.

        Raises:
            SessionStoreError: the store failed
        """
        if not session_id:
            return False

        async with self._lock_for(self._session_locks, session_id):
            return await self._with_retries(
                "terminate_session",
                session_id,
                lambda: self._terminate_once(session_id, reason),
            )

    async def _terminate_once(self, session_id: str, reason: str) -> bool:
        async with self._transaction("terminate_session") as repo:
            session = await repo.get_by_id(session_id)
            if session is None:
                return False
            if not session.is_active:
                return True

            now = self.clock()
            duration_ms = self._apply_termination(session, reason, now)

        ref = session_ref(session_id)
        logger.info(
            "Session terminated",
            extra={
                "session": ref,
                "username": session.username,
                "reason": reason,
                "status": session.status,
                "duration_minutes": round(duration_ms / 60000),
                "final_risk_score": session.risk_score,
            },
        )
        audit_logger.terminate("session", ref, {"reason": reason, "status": str(session.status)})
        return True

    # --------------------------------------------------------
    # DETAILS
    # --------------------------------------------------------

    async def list_recent_sessions(self, limit: int = 50) -> list[UserSessionModel]:
        """The most recently created sessions in any status, newest first."""
        if limit <= 0:
            return []
        async with self._transaction("list_recent_sessions") as repo:
            return list(await repo.list_recent(limit))

    async def get_session_details(self, session_id: str) -> SessionDetailView | None:
        """Presentation-shaped view of one session, or None if unknown."""
        if not session_id:
            return None

        async with self._transaction("get_session_details") as repo:
            session = await repo.get_by_id(session_id)

        if session is None:
            return None

        now = self.clock()
        login_time = ensure_utc(session.login_time)
        logout_time = ensure_utc(session.logout_time)
        duration_ms = (
            ((logout_time or now) - login_time).total_seconds() * 1000 if login_time else 0
        )
        risk_score = session.risk_score or 0

        return SessionDetailView(
            session_id=session.session_id,
            username=session.username,
            user_id=session.user_id,
            role=session.role or "user",
            status=str(session.status),
            login_time=_isoformat(session.login_time),
            last_activity=_isoformat(session.last_activity),
            expires_at=_isoformat(session.expires_at),
            logout_time=_isoformat(session.logout_time),
            logout_reason=session.logout_reason,
            ip_address=session.ip_address,
            user_agent=session.user_agent,
            device_fingerprint=session.device_fingerprint,
            risk_score=risk_score,
            risk_level=str(self.thresholds.level(risk_score)),
            anomaly_flags=coerce_list(session.anomaly_flags),
            security_events=coerce_list(session.security_events),
            activity_log=coerce_list(session.activity_log)[-self.settings.detail_activity_limit :],
            duration_minutes=round(duration_ms / 60000),
            metadata=coerce_dict(session.session_metadata),
        )


__all__ = [
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
]
