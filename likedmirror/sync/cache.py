"""In-memory liked tracks cache.

``CacheStore`` holds the published ``LikedTracksCache``. Merges only ever add
or overwrite keys on the published cache; replacing its contents wholesale
goes through ``CacheStore.swap`` so readers switch from the old cache to a
fully built new one in a single assignment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from likedmirror.adapters.library.models import CacheStats
from likedmirror.core.time_utils import format_local, utc_now

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from likedmirror.adapters.library.models import LikedTrack


@dataclass
class LikedTracksCache:
    tracks: dict[str, LikedTrack] = field(default_factory=dict)
    total: int = 0
    last_updated: datetime | None = None
    is_fully_loaded: bool = False

    def __len__(self) -> int:
        return len(self.tracks)

    def __contains__(self, uri: object) -> bool:
        return uri in self.tracks

    def merge(self, items: Iterable[LikedTrack]) -> list[str]:
        """Insert or overwrite every item by key; return the keys that were new."""
        added: list[str] = []
        for item in items:
            if item.uri not in self.tracks:
                added.append(item.uri)
            self.tracks[item.uri] = item
        return added

    def add_missing(self, items: Iterable[LikedTrack]) -> list[str]:
        """Insert only items whose key is absent; return the inserted keys."""
        added: list[str] = []
        for item in items:
            if item.uri in self.tracks:
                continue
            self.tracks[item.uri] = item
            added.append(item.uri)
        return added

    def touch(self) -> None:
        self.last_updated = utc_now()

    def stats(self) -> CacheStats:
        return CacheStats(
            total=self.total,
            loaded=len(self.tracks),
            last_updated=self.last_updated,
            last_updated_display=format_local(self.last_updated),
            is_fully_loaded=self.is_fully_loaded,
        )


class CacheStore:
    """Owner of the currently published cache."""

    def __init__(self, initial: LikedTracksCache | None = None) -> None:
        self._current = initial if initial is not None else LikedTracksCache()

    @property
    def current(self) -> LikedTracksCache:
        return self._current

    def swap(self, replacement: LikedTracksCache) -> LikedTracksCache:
        """Publish ``replacement`` and return the cache it replaced."""
        previous, self._current = self._current, replacement
        return previous
