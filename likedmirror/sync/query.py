"""Read-only access to the liked tracks cache."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from likedmirror.adapters.library.models import CacheStats, LikedTrack
    from likedmirror.sync.cache import CacheStore


class LikedTracksQuery:
    """O(1) lookups over whatever cache is published right now.

    Never awaits and never takes a lock, so it is safe to call while a sync
    operation is running; the answer may trail or lead the remote collection
    slightly but always comes from a consistent cache object.
    """

    def __init__(self, store: CacheStore) -> None:
        self._store = store

    def is_liked(self, uri: str) -> bool:
        return uri in self._store.current.tracks

    def get(self, uri: str) -> LikedTrack | None:
        return self._store.current.tracks.get(uri)

    def get_stats(self) -> CacheStats:
        return self._store.current.stats()
