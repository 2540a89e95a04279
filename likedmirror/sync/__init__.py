"""Liked tracks cache, sync engine and update triggers."""

from likedmirror.sync.cache import CacheStore, LikedTracksCache
from likedmirror.sync.manager import LikedTracksManager
from likedmirror.sync.query import LikedTracksQuery

__all__ = ["CacheStore", "LikedTracksCache", "LikedTracksManager", "LikedTracksQuery"]
