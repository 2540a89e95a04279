"""Pytest configuration and shared fixtures.

Provides an in-memory liked tracks source, a scheduler stand-in and a
factory that wires a ``LikedTracksManager`` with no real delays.
"""

from __future__ import annotations

from typing import Any

import pytest

from likedmirror.adapters.library.fetcher import PageFetcher
from likedmirror.config.library import SyncConfig
from likedmirror.core.backoff import BackoffExecutor, RetryPolicy
from likedmirror.services.notifier import Notifier
from likedmirror.sync.manager import LikedTracksManager


def raw_track(index: int, *, added_at: str | None = None) -> dict[str, Any]:
    """Raw track payload the way the source returns it, unrelated fields included."""
    return {
        "uri": f"spotify:track:{index:05d}",
        "name": f"Track {index}",
        "artists": [
            {"name": f"Artist {index}", "uri": f"spotify:artist:{index}", "type": "artist"}
        ],
        "album": {"name": f"Album {index}", "uri": f"spotify:album:{index}", "images": []},
        "addedAt": added_at or "2025-01-01T00:00:00Z",
        "duration": {"milliseconds": 180000 + index},
        "isPlayable": True,
        "playcount": 12,
    }


def track_uri(index: int) -> str:
    return f"spotify:track:{index:05d}"


class FakeLibrarySource:
    """In-memory paginated source, ordered newest-added first."""

    def __init__(self, count: int = 0, *, start: int = 0) -> None:
        self.tracks: list[dict[str, Any]] = [raw_track(i) for i in range(start, start + count)]
        self.calls: list[tuple[int, int]] = []
        self.failures: list[Exception] = []
        self.health_checks = 0
        self.healthy = True
        self.reported_total: int | None = None
        self.before_fetch: Any = None

    @property
    def fetches(self) -> int:
        return len(self.calls)

    def like(self, *indexes: int) -> None:
        """Add tracks at the head of the collection, last argument newest."""
        for index in indexes:
            self.tracks.insert(0, raw_track(index))

    def unlike(self, index: int) -> None:
        self.tracks = [t for t in self.tracks if t["uri"] != track_uri(index)]

    async def get_tracks(self, *, offset: int, limit: int) -> dict[str, Any]:
        self.calls.append((offset, limit))
        if self.before_fetch is not None:
            await self.before_fetch()
        if self.failures:
            raise self.failures.pop(0)
        total = len(self.tracks) if self.reported_total is None else self.reported_total
        return {
            "items": self.tracks[offset : offset + limit],
            "totalLength": total,
            "unfilteredTotalLength": total,
            "offset": offset,
            "limit": limit,
        }

    async def health_check(self) -> bool:
        self.health_checks += 1
        return self.healthy


class FakeScheduler:
    """Records start/stop calls instead of arming a real timer."""

    def __init__(self) -> None:
        self.starts = 0
        self.stops = 0
        self._armed = False

    def start(self) -> bool:
        if self._armed:
            return False
        self._armed = True
        self.starts += 1
        return True

    def stop(self) -> bool:
        if not self._armed:
            return False
        self._armed = False
        self.stops += 1
        return True

    @property
    def is_running(self) -> bool:
        return self._armed


class RecordingSleep:
    """Async sleep replacement that only records the requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class RecordingSink:
    def __init__(self) -> None:
        self.messages: list[tuple[str, bool]] = []

    def __call__(self, message: str, is_error: bool) -> None:
        self.messages.append((message, is_error))


def make_manager(
    source: FakeLibrarySource,
    *,
    scheduler: FakeScheduler | None = None,
    sink: RecordingSink | None = None,
    sleep: RecordingSleep | None = None,
    **config: Any,
) -> LikedTracksManager:
    settings = {
        "page_size": 50,
        "backfill_delay_seconds": 0.0,
        "debounce_interval_seconds": 5.0,
        "backfill_on_start": False,
        **config,
    }
    sleep = sleep or RecordingSleep()
    fetcher = PageFetcher(
        source,
        policy=RetryPolicy(max_retries=3, initial_delay=2.0),
        executor=BackoffExecutor(sleep=sleep),
    )
    return LikedTracksManager(
        fetcher,
        config=SyncConfig(**settings),
        scheduler=scheduler or FakeScheduler(),
        notifier=Notifier(sink),
        sleep=sleep,
    )


@pytest.fixture
def source() -> FakeLibrarySource:
    return FakeLibrarySource(120)


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
