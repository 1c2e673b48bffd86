"""Playback Check Worker - the tick scheduler.

Hey future me - every P seconds (default 3) this loads the roster of pollable users
(active, has a credential, not suspended) and runs CheckUserPlaybackUseCase for each
of them, at most K (default 2) at a time. The tick is done when ALL its checks are
done; only then is the CheckReport built.

Timing rules:
- ticks never overlap. The next tick starts P after the previous one STARTED, or
  right away if the previous one took longer than P (that's "lagging" and logged,
  not corrected)
- stop() is observed between ticks; a tick in flight is allowed to finish

Failure rules:
- roster can't be loaded -> that tick is aborted and logged, next tick retries
- one user's check fails -> ErrorHandler, siblings are unaffected
"""

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

from cleanplay.application.services.error_handler import ErrorHandler
from cleanplay.application.use_cases.check_user_playback import (
    CheckUserPlaybackUseCase,
    CheckUserResult,
)
from cleanplay.domain.entities import CheckReport
from cleanplay.infrastructure.observability import bind_user, set_correlation_id
from cleanplay.infrastructure.persistence.database import Database
from cleanplay.infrastructure.persistence.models import utc_now
from cleanplay.infrastructure.persistence.repositories import SpotifyAuthRepository

logger = logging.getLogger(__name__)


class PlaybackCheckWorker:
    """Periodic driver fanning playback checks out over all pollable users."""

    def __init__(
        self,
        database: Database,
        check_use_case: CheckUserPlaybackUseCase,
        error_handler: ErrorHandler,
        interval_seconds: float = 3.0,
        parallel_checks: int = 2,
        monotonic: Callable[[], float] = time.monotonic,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the worker.

        Args:
            database: Row store (roster query)
            check_use_case: Per-user check
            error_handler: Receives every per-user error
            interval_seconds: Tick period P
            parallel_checks: Max concurrent user checks K
            monotonic: Clock for measuring elapsed time
            clock: UTC "now" for the roster's suspend_until comparison
        """
        self._database = database
        self._check = check_use_case
        self._error_handler = error_handler
        self._interval = interval_seconds
        self._parallel = parallel_checks
        self._monotonic = monotonic
        self._clock = clock

        self._stop_event = asyncio.Event()
        self._running = False
        self._tick_count = 0
        self._failed_ticks = 0
        self._last_report: CheckReport | None = None
        self._last_tick_at: datetime | None = None

    async def start(self) -> None:
        """Run ticks until stop() is called."""
        self._running = True
        self._stop_event.clear()
        logger.info(
            "PlaybackCheckWorker started (interval=%.1fs, parallel=%d)",
            self._interval,
            self._parallel,
        )

        try:
            while not self._stop_event.is_set():
                started = self._monotonic()
                try:
                    await self.run_tick()
                except Exception as e:
                    self._failed_ticks += 1
                    logger.error("Playback check tick failed: %s", e, exc_info=True)

                elapsed = self._monotonic() - started
                delay = max(0.0, self._interval - elapsed)
                if delay == 0.0:
                    continue
                # Wake up early on stop() instead of sleeping the full delay.
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                except TimeoutError:
                    pass
        finally:
            self._running = False
            logger.info("PlaybackCheckWorker stopped")

    def stop(self) -> None:
        """Signal the worker to stop after the current tick."""
        self._stop_event.set()

    async def run_tick(self) -> CheckReport:
        """
        Run one tick over all pollable users.

        Returns:
            CheckReport for this tick

        Raises:
            Exception: Loading the roster failed (the tick is aborted)
        """
        started = self._monotonic()
        async with self._database.session_scope() as session:
            user_ids = await SpotifyAuthRepository(session).list_pollable_user_ids(self._clock())

        semaphore = asyncio.Semaphore(self._parallel)

        async def check_one(user_id: str) -> CheckUserResult | None:
            async with semaphore:
                # Each gather child runs in its own context copy, so ids never leak between users.
                set_correlation_id()
                bind_user(user_id)
                return await self._check_user(user_id)

        results = await asyncio.gather(*(check_one(user_id) for user_id in user_ids))

        elapsed = self._monotonic() - started
        report = CheckReport(
            max_process_time=self._interval,
            users_process_time=elapsed,
            users_count=len(user_ids),
            users_checked=sum(1 for result in results if result == CheckUserResult.COMPLETE),
            parallel_count=self._parallel,
            lagging=elapsed > self._interval,
        )
        if report.lagging:
            logger.warning(
                "Playback check tick is lagging: %.2fs for %d users (interval %.1fs)",
                elapsed,
                len(user_ids),
                self._interval,
            )

        self._tick_count += 1
        self._last_report = report
        self._last_tick_at = self._clock()
        return report

    async def _check_user(self, user_id: str) -> CheckUserResult | None:
        """One isolated user check; errors go to the ErrorHandler, never to siblings."""
        try:
            return await self._check.execute(user_id)
        except Exception as e:
            try:
                await self._error_handler.handle(e, user_id)
            except Exception as handler_error:
                logger.error(
                    "Error handler failed for user %s: %s", user_id, handler_error, exc_info=True
                )
            return None

    def get_stats(self) -> dict[str, Any]:
        """Stats for the health API."""
        return {
            "running": self._running,
            "interval_seconds": self._interval,
            "parallel_checks": self._parallel,
            "tick_count": self._tick_count,
            "failed_ticks": self._failed_ticks,
            "last_tick_at": self._last_tick_at.isoformat() if self._last_tick_at else None,
            "last_report": self._last_report.to_dict() if self._last_report else None,
        }
