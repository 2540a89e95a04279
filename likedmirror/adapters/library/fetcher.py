"""Page fetching and normalization for the liked tracks source."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from likedmirror.adapters.library.client import LibraryResponseError
from likedmirror.adapters.library.models import LikedTrack, TrackPage
from likedmirror.core.backoff import BackoffExecutor, RetryPolicy

if TYPE_CHECKING:
    from likedmirror.adapters.library.protocols import LibrarySource

logger = logging.getLogger(__name__)

TOTAL_FIELDS = ("totalLength", "unfilteredTotalLength")


def resolve_total(raw: dict[str, Any]) -> int:
    """Return the collection size reported by a raw page.

    ``totalLength`` wins when present, ``unfilteredTotalLength`` is the
    fallback, and a payload carrying neither reports 0.
    """
    for field in TOTAL_FIELDS:
        value = raw.get(field)
        if value is None:
            continue
        # bool is an int subclass; floats and numeric strings would be truncated
        if isinstance(value, bool) or not isinstance(value, int):
            raise LibraryResponseError(f"{field} is not an integer: {value!r}")
        return max(value, 0)
    return 0


def normalize_page(raw: dict[str, Any], *, offset: int, limit: int) -> TrackPage:
    """Map a raw source payload onto a ``TrackPage``, dropping unrelated fields."""
    items = raw.get("items")
    if items is None:
        items = []
    if not isinstance(items, list):
        raise LibraryResponseError(f"items is {type(items).__name__}, expected a list")

    try:
        tracks = tuple(LikedTrack.model_validate(item) for item in items)
    except ValidationError as exc:
        raise LibraryResponseError(f"malformed track in page at offset {offset}: {exc}") from exc

    return TrackPage(items=tracks, offset=offset, limit=limit, total=resolve_total(raw))


class PageFetcher:
    """Fetch one normalized page at a time, retrying per ``RetryPolicy``."""

    def __init__(
        self,
        source: LibrarySource,
        *,
        policy: RetryPolicy | None = None,
        executor: BackoffExecutor | None = None,
        max_page_size: int = 100,
    ) -> None:
        self._source = source
        self._policy = policy or RetryPolicy()
        self._executor = executor or BackoffExecutor()
        self.max_page_size = max_page_size

    @property
    def source(self) -> LibrarySource:
        return self._source

    async def fetch(self, offset: int, limit: int) -> TrackPage:
        """Fetch and normalize the page at ``offset``.

        Raises:
            Exception: Whatever the last attempt raised once retries are exhausted
        """
        offset = max(offset, 0)
        limit = min(max(limit, 1), self.max_page_size)

        async def _fetch() -> TrackPage:
            started = time.perf_counter()
            raw = await self._source.get_tracks(offset=offset, limit=limit)
            page = normalize_page(raw, offset=offset, limit=limit)
            logger.debug(
                "liked_tracks_page_fetched",
                extra={
                    "offset": offset,
                    "limit": limit,
                    "count": len(page.items),
                    "total": page.total,
                    "latency_ms": round((time.perf_counter() - started) * 1000, 2),
                },
            )
            return page

        return await self._executor.run(
            _fetch, self._policy, operation_name=f"get_tracks(offset={offset}, limit={limit})"
        )
