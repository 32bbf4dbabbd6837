# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Repository pattern for session storage.

Every repository is constructed with an AsyncSession and provides
typed query methods. Transaction boundaries belong to the caller;
``repository_transaction`` opens a bounded one for the services.
"""

import asyncio
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from sessionguard_core.exceptions.hierarchy import SessionStoreError

from .models import TERMINAL_STATUSES, SessionStatus, UserSessionModel
from .types import ensure_utc


class SessionRepository:
    """CRUD and bulk maintenance for the user_sessions table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, record: UserSessionModel) -> UserSessionModel:
        self.session.add(record)
        await self.session.flush()
        return record

    async def get_by_id(self, session_id: str) -> UserSessionModel | None:
        result = await self.session.execute(
            select(UserSessionModel).where(UserSessionModel.session_id == session_id)
        )
        return result.scalar_one_or_none()

    async def count_active_by_username(self, username: str) -> int:
        result = await self.session.execute(
            select(func.count(UserSessionModel.session_id)).where(
                and_(
                    UserSessionModel.username == username,
                    UserSessionModel.status == SessionStatus.ACTIVE,
                )
            )
        )
        return result.scalar_one()

    async def list_oldest_active_by_username(
        self, username: str, limit: int = 1
    ) -> Sequence[UserSessionModel]:
        """Active sessions for a user, least recently used first.

        Ties on both timestamps fall back to session_id, so every backend
        picks the same victims.
        """
        result = await self.session.execute(
            select(UserSessionModel)
            .where(
                and_(
                    UserSessionModel.username == username,
                    UserSessionModel.status == SessionStatus.ACTIVE,
                )
            )
            .order_by(
                UserSessionModel.last_activity.asc(),
                UserSessionModel.login_time.asc(),
                UserSessionModel.session_id.asc(),
            )
            .limit(limit)
        )
        return result.scalars().all()

    async def list_created_since(self, since: datetime) -> Sequence[UserSessionModel]:
        result = await self.session.execute(
            select(UserSessionModel)
            .where(UserSessionModel.login_time >= since)
            .order_by(UserSessionModel.login_time.desc())
        )
        return result.scalars().all()

    async def list_recent(self, limit: int = 50) -> Sequence[UserSessionModel]:
        result = await self.session.execute(
            select(UserSessionModel)
            .order_by(UserSessionModel.login_time.desc(), UserSessionModel.session_id.asc())
            .limit(limit)
        )
        return result.scalars().all()

    async def backfill_expires_at(self, lifetime: timedelta, now: datetime) -> int:
        """Give active rows without an absolute expiry ``last_activity + lifetime``.

        Each row is updated by primary key with a guard on ``expires_at IS NULL``,
        so a concurrent backfill never overwrites a value that landed first.
        """
        result = await self.session.execute(
            select(
                UserSessionModel.session_id,
                UserSessionModel.last_activity,
                UserSessionModel.login_time,
            ).where(
                and_(
                    UserSessionModel.status == SessionStatus.ACTIVE,
                    UserSessionModel.expires_at.is_(None),
                )
            )
        )

        updated = 0
        for session_id, last_activity, login_time in result.all():
            anchor = ensure_utc(last_activity) or ensure_utc(login_time) or now
            outcome = await self.session.execute(
                update(UserSessionModel)
                .where(
                    and_(
                        UserSessionModel.session_id == session_id,
                        UserSessionModel.status == SessionStatus.ACTIVE,
                        UserSessionModel.expires_at.is_(None),
                    )
                )
                .values(
                    expires_at=anchor + lifetime,
                    updated_at=now,
                    version_id=UserSessionModel.version_id + 1,
                )
                .execution_options(synchronize_session=False)
            )
            updated += outcome.rowcount or 0
        return updated

    async def expire_idle(self, idle_before: datetime, now: datetime) -> int:
        """Move active sessions idle since before ``idle_before`` to expired."""
        result = await self.session.execute(
            update(UserSessionModel)
            .where(
                and_(
                    UserSessionModel.status == SessionStatus.ACTIVE,
                    UserSessionModel.last_activity < idle_before,
                )
            )
            .values(
                status=SessionStatus.EXPIRED,
                logout_time=now,
                logout_reason="timeout",
                updated_at=now,
                version_id=UserSessionModel.version_id + 1,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def delete_terminal_before(self, cutoff: datetime) -> int:
        """Hard-delete terminal sessions whose terminal transition predates ``cutoff``.

        The transition time is ``logout_time``; rows without one fall back
        to ``updated_at``.
        """
        result = await self.session.execute(
            delete(UserSessionModel)
            .where(
                and_(
                    UserSessionModel.status.in_(TERMINAL_STATUSES),
                    or_(
                        and_(
                            UserSessionModel.logout_time.is_not(None),
                            UserSessionModel.logout_time < cutoff,
                        ),
                        and_(
                            UserSessionModel.logout_time.is_(None),
                            UserSessionModel.updated_at < cutoff,
                        ),
                    ),
                )
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


@asynccontextmanager
async def repository_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    operation: str,
    timeout_seconds: float,
) -> AsyncIterator[SessionRepository]:
    """
    One bounded store transaction; commits on clean exit, rolls back otherwise.

    Driver errors and timeouts surface as SessionStoreError. StaleDataError
    passes through untouched so callers can retry the compare-and-swap.
    """
    try:
        async with asyncio.timeout(timeout_seconds):
            async with session_factory() as db:
                async with db.begin():
                    yield SessionRepository(db)
    except StaleDataError:
        raise
    except (SQLAlchemyError, TimeoutError, ConnectionError) as e:
        raise SessionStoreError(
            f"Session store failure during {operation}",
            operation=operation,
            original_error=e,
        ) from e


__all__ = ["SessionRepository", "repository_transaction"]
