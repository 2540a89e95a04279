"""Debounce and external trigger sources for update checks."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class UpdateDebouncer:
    """Accept a check only if ``min_interval_seconds`` passed since the last accepted one.

    Rejected checks leave no trace, so a burst of calls cannot push the
    next accepted check further out.
    """

    def __init__(
        self,
        min_interval_seconds: float,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock or time.monotonic
        self._last_accepted: float | None = None

    def should_accept(self) -> bool:
        now = self._clock()
        last = self._last_accepted
        if last is not None and now - last <= self.min_interval_seconds:
            return False
        self._last_accepted = now
        return True

    def reset(self) -> None:
        self._last_accepted = None


class UpdateTrigger(Protocol):
    """Anything an external event hook can poke to ask for an update check."""

    def notify(self) -> None: ...

    async def drain(self) -> None: ...


class DebouncedUpdateTrigger:
    """Trigger source that schedules ``request`` on the running loop.

    ``request`` is expected to apply its own debounce (see
    ``LikedTracksManager.request_update``). ``notify`` never raises and never
    blocks, so it can be wired to any callback-style event hook.
    """

    def __init__(self, request: Callable[[], Awaitable[Any]]) -> None:
        self._request = request
        self._pending: set[asyncio.Task[Any]] = set()

    def notify(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("liked_tracks_trigger_no_event_loop")
            return
        task = loop.create_task(self._request())
        self._pending.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "liked_tracks_trigger_failed",
                extra={"error": str(exc)},
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def drain(self) -> None:
        """Wait for every update this trigger has scheduled so far."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
