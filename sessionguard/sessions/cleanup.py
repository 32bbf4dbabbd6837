# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Retention and Cleanup Scheduler

Two set-based passes over the session store:
1. Expiry sweep: active sessions idle for longer than the retention
   window move to ``expired`` (reason ``timeout``).
2. Hard purge: terminal sessions whose terminal transition is older
   than the retention window are deleted.

A one-off backfill gives legacy active rows without ``expires_at`` an
absolute expiry of ``last_activity`` plus the retention window.

Each pass commits in its own transaction, so a failing purge never holds
back the sweep. Both passes are idempotent. The scheduler fires a pass every
``cleanup_interval_seconds`` without waiting for the previous one to
finish; a failed pass is logged and the next tick tries again.

Usage:
    cleanup = SessionCleanupService(get_session_factory())
    cleanup.start()
    ...
    await cleanup.stop()
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sessionguard_core.exceptions.hierarchy import SessionStoreError

from ..core.settings import SessionSettings, get_settings
from ..data.repositories import repository_transaction
from ..observability.logging import audit_logger
from .manager import Clock

logger = logging.getLogger(__name__)


@dataclass
class PurgeResult:
    expired_updated: int = 0
    deleted_old: int = 0

    @property
    def total(self) -> int:
        return self.expired_updated + self.deleted_old


class SessionCleanupService:
    """
    Expires idle sessions and deletes old terminal ones.

    Args:
        session_factory: async_sessionmaker bound to the session store
        settings: Session settings (defaults to the process settings)
        clock: Zero-arg callable returning an aware UTC datetime
    """

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
        self.interval = self.settings.cleanup_interval_seconds

        self._running = False
        self._loop_task: asyncio.Task | None = None
        self._runs: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._running

    # --------------------------------------------------------
    # PURGE
    # --------------------------------------------------------

    async def purge_expired_and_old_sessions(self) -> PurgeResult:
        """
        Run the expiry sweep and the hard purge once.

        The two passes commit independently. When one fails the other
        still runs, and the error raised afterwards carries the counts
        that were committed.

        Raises:
            SessionStoreError: at least one pass failed
        """
        now = self.clock()
        cutoff = now - self.settings.retention_window
        result = PurgeResult()
        failures: list[SessionStoreError] = []

        try:
            async with self._transaction("expire_idle_sessions") as repo:
                result.expired_updated = await repo.expire_idle(cutoff, now)
        except SessionStoreError as e:
            logger.error(f"Expiry sweep failed: {e}")
            failures.append(e)

        try:
            async with self._transaction("delete_terminal_sessions") as repo:
                result.deleted_old = await repo.delete_terminal_before(cutoff)
        except SessionStoreError as e:
            logger.error(f"Hard purge failed: {e}")
            failures.append(e)

        if result.total:
            audit_logger.purge(
                "session",
                {
                    "expired_updated": result.expired_updated,
                    "deleted_old": result.deleted_old,
                    "cutoff": cutoff.isoformat(),
                },
            )

        if failures:
            first = failures[0]
            raise SessionStoreError(
                "Session cleanup incomplete",
                operation="purge_expired_and_old_sessions",
                details={
                    "failed_passes": [f.details.get("operation") for f in failures],
                    "expired_updated": result.expired_updated,
                    "deleted_old": result.deleted_old,
                },
            ) from first
        return result

    def _transaction(self, operation: str):
        return repository_transaction(
            self.session_factory, operation, self.settings.store_timeout_seconds
        )

    async def backfill_expiry(self) -> int:
        """
        Stamp an absolute expiry on legacy active sessions that have none.

        The expiry is ``last_activity`` plus the retention window, so a row
        that has been idle longer than that fails its next validation.
        Returns the number of sessions updated.
        """
        now = self.clock()
        async with self._transaction("backfill_expiry") as repo:
            updated = await repo.backfill_expires_at(self.settings.retention_window, now)

        if updated:
            logger.info(
                "Absolute expiry backfilled on legacy sessions",
                extra={"updated": updated, "retention_hours": self.settings.retention_hours},
            )
            audit_logger.log("backfill", "session", details={"updated": updated})
        return updated

    async def run_once(self) -> PurgeResult | None:
        """One scheduled pass. Failures are logged, never raised."""
        try:
            result = await self.purge_expired_and_old_sessions()
        except Exception as e:
            logger.error(f"Session cleanup failed: {e}", exc_info=True)
            return None

        if result.total:
            logger.info(
                "Session cleanup completed",
                extra={
                    "expired_updated": result.expired_updated,
                    "deleted_old": result.deleted_old,
                },
            )
        else:
            logger.debug("Session cleanup found nothing to do")
        return result

    # --------------------------------------------------------
    # SCHEDULER
    # --------------------------------------------------------

    def _spawn_run(self) -> asyncio.Task:
        task = asyncio.create_task(self.run_once())
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)
        return task

    async def run(self) -> None:
        """
        Scheduler loop. Fires a pass immediately and then every interval.

        Intended to run as a background task, or in the foreground for a
        dedicated worker process.
        """
        self._running = True
        logger.info(f"Session cleanup scheduler started (interval {self.interval}s)")

        while self._running:
            self._spawn_run()
            await asyncio.sleep(self.interval)

        logger.info("Session cleanup scheduler stopped")

    def start(self) -> asyncio.Task:
        """Start the scheduler on the running event loop."""
        if self._loop_task is None or self._loop_task.done():
            self._running = True
            self._loop_task = asyncio.create_task(self.run())
        return self._loop_task

    async def stop(self) -> None:
        """Stop scheduling and wait for in-flight passes to settle."""
        self._running = False

        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

        if self._runs:
            await asyncio.gather(*self._runs, return_exceptions=True)


__all__ = ["SessionCleanupService", "PurgeResult"]
