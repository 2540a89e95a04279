"""Liked tracks source adapter: HTTP client, page fetcher and models."""

from likedmirror.adapters.library.client import (
    LibraryClient,
    LibraryClientError,
    LibraryResponseError,
    LibraryRetryableError,
    LibraryUnavailableError,
)
from likedmirror.adapters.library.fetcher import PageFetcher

__all__ = [
    "LibraryClient",
    "LibraryClientError",
    "LibraryResponseError",
    "LibraryRetryableError",
    "LibraryUnavailableError",
    "PageFetcher",
]
