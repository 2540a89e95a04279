"""Recurring poll timer for incremental liked tracks updates."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

logger = logging.getLogger(__name__)


class PollingScheduler:
    """A single interval job that calls ``callback`` on every tick.

    ``start`` is idempotent while armed and must be called from a running
    event loop. ``stop`` cancels the job; starting again afterwards re-arms a
    fresh scheduler.
    """

    JOB_ID = "liked_tracks_poll"

    def __init__(
        self,
        callback: Callable[[], Awaitable[Any]],
        interval_seconds: float,
    ) -> None:
        self._callback = callback
        self.interval_seconds = interval_seconds
        self._scheduler: AsyncIOScheduler | None = None
        self._armed = False

    def start(self) -> bool:
        """Arm the timer. Returns False when it was already armed."""
        if self._armed:
            logger.debug("liked_tracks_poll_already_armed")
            return False

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=self.JOB_ID,
            name="Liked tracks incremental update",
            replace_existing=True,
            max_instances=1,  # Prevent overlapping runs
            coalesce=True,
        )
        self._scheduler.start()
        self._armed = True
        logger.info(
            "liked_tracks_poll_started",
            extra={"job_id": self.JOB_ID, "interval_seconds": self.interval_seconds},
        )
        return True

    def stop(self) -> bool:
        """Cancel the timer. Returns False when it was not armed."""
        if not self._armed:
            return False
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        self._armed = False
        logger.info("liked_tracks_poll_stopped", extra={"job_id": self.JOB_ID})
        return True

    async def _tick(self) -> None:
        try:
            await self._callback()
        except Exception:
            logger.exception("liked_tracks_poll_tick_failed", extra={"job_id": self.JOB_ID})

    @property
    def is_running(self) -> bool:
        return self._armed and self._scheduler is not None

    def get_next_run_time(self) -> datetime | None:
        if not self._scheduler or not self._armed:
            return None
        job = self._scheduler.get_job(self.JOB_ID)
        return job.next_run_time if job else None
