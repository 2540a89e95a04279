"""Liked tracks synchronization engine.

Keeps a local mirror of the remote liked collection:

- ``initialize`` loads the first page so lookups work almost immediately,
  then arms the poll timer (and, by default, starts a background backfill).
- ``load_all_data`` sweeps the remaining pages, resuming from the number of
  cached tracks.
- ``update_incremental`` polls the first page and reacts to the reported
  total: unchanged means nothing to do, a small growth is diffed against the
  cache, a large growth triggers a backfill and any shrink triggers a full
  reload.
- ``reload_all`` rebuilds the cache from scratch and publishes it in one swap.

Every loading operation runs under one Idle/Syncing guard. An operation that
finds the guard taken returns a ``skipped`` result instead of waiting, so
timer ticks, manual calls and event hooks never interleave.

The head diff relies on the source listing tracks newest-added first. Tracks
added outside the first page's window (or sources ordered differently) are
only picked up by the next backfill or reload; see
``likedmirror.adapters.library.contract`` to check a source's ordering.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from likedmirror.adapters.library.client import LibraryUnavailableError
from likedmirror.adapters.library.models import SyncResult, SyncStatus
from likedmirror.config.library import SyncConfig
from likedmirror.core.logging_utils import generate_correlation_id
from likedmirror.services.notifier import Notifier
from likedmirror.sync.cache import CacheStore, LikedTracksCache
from likedmirror.sync.query import LikedTracksQuery
from likedmirror.sync.scheduler import PollingScheduler
from likedmirror.sync.triggers import DebouncedUpdateTrigger, UpdateDebouncer, UpdateTrigger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterator

    from likedmirror.adapters.library.fetcher import PageFetcher
    from likedmirror.adapters.library.models import CacheStats, LikedTrack

logger = logging.getLogger(__name__)


class LikedTracksManager:
    """Sync engine and sole writer of the liked tracks cache."""

    def __init__(
        self,
        fetcher: PageFetcher,
        *,
        config: SyncConfig | None = None,
        store: CacheStore | None = None,
        scheduler: PollingScheduler | None = None,
        notifier: Notifier | None = None,
        debouncer: UpdateDebouncer | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self._config = config or SyncConfig()
        self._fetcher = fetcher
        self._store = store or CacheStore()
        self._query = LikedTracksQuery(self._store)
        self._scheduler = scheduler or PollingScheduler(
            self.update_incremental, self._config.poll_interval_seconds
        )
        self._notifier = notifier or Notifier()
        self._debouncer = debouncer or UpdateDebouncer(self._config.debounce_interval_seconds)
        self._sleep = sleep or asyncio.sleep
        self._is_loading = False
        self._backfill_task: asyncio.Task[None] | None = None
        self.trigger: UpdateTrigger = DebouncedUpdateTrigger(self.request_update)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def cache(self) -> LikedTracksCache:
        return self._store.current

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_polling(self) -> bool:
        return self._scheduler.is_running

    def is_liked(self, uri: str) -> bool:
        return self._query.is_liked(uri)

    def get_track(self, uri: str) -> LikedTrack | None:
        return self._query.get(uri)

    def get_stats(self) -> CacheStats:
        return self._query.get_stats()

    # ------------------------------------------------------------------
    # Guard
    # ------------------------------------------------------------------

    @contextmanager
    def _sync_guard(self, operation: str, correlation_id: str) -> Iterator[bool]:
        if self._is_loading:
            logger.info(
                "liked_tracks_sync_busy",
                extra={"operation": operation, "correlation_id": correlation_id},
            )
            yield False
            return
        self._is_loading = True
        try:
            yield True
        finally:
            self._is_loading = False

    @staticmethod
    def _skipped(operation: str, total: int) -> SyncResult:
        return SyncResult(
            operation=operation, status=SyncStatus.SKIPPED, previous_total=total, total=total
        )

    # ------------------------------------------------------------------
    # Initial load
    # ------------------------------------------------------------------

    async def initialize(self) -> SyncResult:
        """Load the first page and arm the poll timer.

        One-time bootstrap: returns a ``skipped`` result if a load is running
        or the cache already has tracks.

        Raises:
            LibraryUnavailableError: If the source does not answer a health check
            Exception: Any fetch error left after retries; the cache is untouched
        """
        correlation_id = generate_correlation_id()
        started = time.perf_counter()

        with self._sync_guard("initialize", correlation_id) as acquired:
            cache = self._store.current
            if not acquired:
                return self._skipped("initialize", cache.total)
            if len(cache) > 0:
                logger.debug(
                    "liked_tracks_already_initialized",
                    extra={"correlation_id": correlation_id, "loaded": len(cache)},
                )
                return self._skipped("initialize", cache.total)

            logger.info("liked_tracks_initializing", extra={"correlation_id": correlation_id})
            try:
                if not await self._fetcher.source.health_check():
                    raise LibraryUnavailableError("Liked tracks source is not reachable")
                page = await self._fetcher.fetch(0, self._config.page_size)
            except Exception:
                logger.exception(
                    "liked_tracks_initialize_failed", extra={"correlation_id": correlation_id}
                )
                self._notifier.error("Failed to load liked tracks")
                raise

            added = cache.merge(page.items)
            cache.total = page.total
            cache.touch()

            if self._config.polling_enabled:
                self.start_polling()

            result = SyncResult(
                operation="initialize",
                status=SyncStatus.COMPLETED,
                fetches=1,
                items_added=len(added),
                previous_total=0,
                total=cache.total,
                duration_seconds=time.perf_counter() - started,
            )

        logger.info(
            "liked_tracks_initialized",
            extra={
                "correlation_id": correlation_id,
                "loaded": len(cache),
                "total": cache.total,
                "duration_seconds": result.duration_seconds,
            },
        )
        self._notifier.success(f"Liked tracks loaded ({cache.total})")

        if self._config.backfill_on_start:
            self._schedule_backfill()
        return result

    # ------------------------------------------------------------------
    # Backfill / reload
    # ------------------------------------------------------------------

    async def load_all_data(self) -> SyncResult:
        """Fetch every page not yet cached, resuming from the cached count.

        Raises:
            Exception: Any fetch error left after retries
        """
        correlation_id = generate_correlation_id()
        started = time.perf_counter()

        with self._sync_guard("load_all_data", correlation_id) as acquired:
            cache = self._store.current
            if not acquired:
                return self._skipped("load_all_data", cache.total)
            try:
                result = await self._backfill(cache, correlation_id=correlation_id)
            except Exception:
                logger.exception(
                    "liked_tracks_backfill_failed",
                    extra={"correlation_id": correlation_id, "loaded": len(cache)},
                )
                raise

        result.duration_seconds = time.perf_counter() - started
        if result.fetches and cache.is_fully_loaded:
            self._notifier.success(f"All liked tracks loaded ({len(cache)})")
        return result

    async def reload_all(self) -> SyncResult:
        """Rebuild the cache from scratch and publish it in one swap.

        The current cache stays published (and queryable) until the new one
        is complete; on failure it is kept as is.

        Raises:
            Exception: Any fetch error left after retries
        """
        correlation_id = generate_correlation_id()
        started = time.perf_counter()

        with self._sync_guard("reload_all", correlation_id) as acquired:
            if not acquired:
                return self._skipped("reload_all", self._store.current.total)
            try:
                result = await self._reload(correlation_id=correlation_id)
            except Exception:
                logger.exception(
                    "liked_tracks_reload_failed", extra={"correlation_id": correlation_id}
                )
                raise

        result.duration_seconds = time.perf_counter() - started
        self._notifier.success(f"Liked tracks reloaded ({result.total})")
        return result

    async def _backfill(
        self,
        cache: LikedTracksCache,
        *,
        correlation_id: str,
        operation: str = "load_all_data",
    ) -> SyncResult:
        offset = len(cache)
        result = SyncResult(
            operation=operation,
            status=SyncStatus.COMPLETED,
            previous_total=cache.total,
            total=cache.total,
        )

        if offset >= cache.total:
            cache.is_fully_loaded = True
            logger.debug(
                "liked_tracks_backfill_not_needed",
                extra={"correlation_id": correlation_id, "loaded": offset, "total": cache.total},
            )
            return result

        logger.info(
            "liked_tracks_backfill_started",
            extra={"correlation_id": correlation_id, "offset": offset, "total": cache.total},
        )
        self._notifier.loading(f"Loading liked tracks ({offset}/{cache.total})")
        completed = True
        while offset < cache.total:
            page = await self._fetcher.fetch(offset, self._config.page_size)
            result.fetches += 1
            result.items_added += len(cache.merge(page.items))

            if not page.items:
                logger.warning(
                    "liked_tracks_backfill_short_page",
                    extra={
                        "correlation_id": correlation_id,
                        "offset": offset,
                        "total": cache.total,
                    },
                )
                completed = False
                break

            # advance by what actually came back; the source may return short pages
            offset += len(page.items)
            logger.debug(
                "liked_tracks_backfill_progress",
                extra={"correlation_id": correlation_id, "offset": offset, "total": cache.total},
            )
            if offset < cache.total and self._config.backfill_delay_seconds > 0:
                await self._sleep(self._config.backfill_delay_seconds)

        # a sweep resumed after bulk growth can finish with the newest tracks unseen
        cache.is_fully_loaded = completed and len(cache) >= cache.total
        cache.touch()

        logger.info(
            "liked_tracks_backfill_complete",
            extra={
                "correlation_id": correlation_id,
                "loaded": len(cache),
                "total": cache.total,
                "fetches": result.fetches,
                "fully_loaded": cache.is_fully_loaded,
            },
        )
        return result

    async def _reload(self, *, correlation_id: str) -> SyncResult:
        fresh = LikedTracksCache()
        page = await self._fetcher.fetch(0, self._config.page_size)
        fresh.merge(page.items)
        fresh.total = page.total
        fresh.touch()

        backfill = await self._backfill(
            fresh, correlation_id=correlation_id, operation="reload_all"
        )
        previous = self._store.swap(fresh)

        logger.info(
            "liked_tracks_reloaded",
            extra={
                "correlation_id": correlation_id,
                "previous_loaded": len(previous),
                "previous_total": previous.total,
                "loaded": len(fresh),
                "total": fresh.total,
            },
        )
        return SyncResult(
            operation="reload_all",
            status=SyncStatus.RELOADED,
            fetches=1 + backfill.fetches,
            items_added=len(fresh),
            previous_total=previous.total,
            total=fresh.total,
        )

    # ------------------------------------------------------------------
    # Incremental updates
    # ------------------------------------------------------------------

    async def update_incremental(self) -> SyncResult:
        """Poll the first page and bring the cache up to date.

        Never raises: failures are logged and reported as a ``failed`` result
        so the poll timer keeps running.
        """
        correlation_id = generate_correlation_id()
        started = time.perf_counter()

        with self._sync_guard("update_incremental", correlation_id) as acquired:
            if not acquired:
                return self._skipped("update_incremental", self._store.current.total)
            try:
                result = await self._update(correlation_id=correlation_id)
            except Exception as exc:
                logger.exception(
                    "liked_tracks_incremental_update_failed",
                    extra={"correlation_id": correlation_id, "error": str(exc)},
                )
                total = self._store.current.total
                return SyncResult(
                    operation="update_incremental",
                    status=SyncStatus.FAILED,
                    previous_total=total,
                    total=total,
                    error=str(exc),
                    duration_seconds=time.perf_counter() - started,
                )

        result.duration_seconds = time.perf_counter() - started
        return result

    async def request_update(self) -> SyncResult:
        """Debounced ``update_incremental`` for manual calls and event hooks."""
        if not self._debouncer.should_accept():
            logger.debug(
                "liked_tracks_update_debounced",
                extra={"min_interval_seconds": self._debouncer.min_interval_seconds},
            )
            return self._skipped("update_incremental", self._store.current.total)
        return await self.update_incremental()

    async def _update(self, *, correlation_id: str) -> SyncResult:
        page_size = self._config.page_size
        cache = self._store.current
        page = await self._fetcher.fetch(0, page_size)
        previous_total = cache.total
        new_total = page.total

        if new_total == previous_total:
            logger.debug(
                "liked_tracks_unchanged",
                extra={"correlation_id": correlation_id, "total": new_total},
            )
            return SyncResult(
                operation="update_incremental",
                status=SyncStatus.UNCHANGED,
                fetches=1,
                previous_total=previous_total,
                total=new_total,
            )

        if new_total < previous_total:
            # A head page cannot tell which tracks disappeared, only a full sweep can
            logger.info(
                "liked_tracks_shrink_detected",
                extra={
                    "correlation_id": correlation_id,
                    "previous_total": previous_total,
                    "total": new_total,
                },
            )
            reload = await self._reload(correlation_id=correlation_id)
            return SyncResult(
                operation="update_incremental",
                status=SyncStatus.RELOADED,
                fetches=1 + reload.fetches,
                items_added=reload.items_added,
                previous_total=previous_total,
                total=reload.total,
            )

        if new_total - previous_total > page_size:
            logger.info(
                "liked_tracks_bulk_growth_detected",
                extra={
                    "correlation_id": correlation_id,
                    "previous_total": previous_total,
                    "total": new_total,
                },
            )
            cache.total = new_total
            cache.is_fully_loaded = False
            backfill = await self._backfill(
                cache, correlation_id=correlation_id, operation="update_incremental"
            )
            return SyncResult(
                operation="update_incremental",
                status=SyncStatus.BACKFILLED,
                fetches=1 + backfill.fetches,
                items_added=backfill.items_added,
                previous_total=previous_total,
                total=new_total,
            )

        added = cache.add_missing(page.items)
        cache.total = new_total
        cache.is_fully_loaded = cache.is_fully_loaded and len(cache) >= new_total
        cache.touch()
        logger.info(
            "liked_tracks_head_diff_applied",
            extra={
                "correlation_id": correlation_id,
                "previous_total": previous_total,
                "total": new_total,
                "added": len(added),
            },
        )
        return SyncResult(
            operation="update_incremental",
            status=SyncStatus.ADDED,
            fetches=1,
            items_added=len(added),
            added_uris=added,
            previous_total=previous_total,
            total=new_total,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_polling(self) -> bool:
        return self._scheduler.start()

    def stop_polling(self) -> bool:
        return self._scheduler.stop()

    def _schedule_backfill(self) -> None:
        if self._backfill_task is not None and not self._backfill_task.done():
            return
        self._backfill_task = asyncio.get_running_loop().create_task(
            self._run_background_backfill()
        )

    async def _run_background_backfill(self) -> None:
        try:
            await self.load_all_data()
        except Exception:
            logger.exception("liked_tracks_background_backfill_failed")
            self._notifier.warn("Could not load all liked tracks; will retry on reload")

    async def wait_for_backfill(self) -> None:
        """Wait for the backfill started by ``initialize`` (if any) to finish."""
        if self._backfill_task is not None:
            await asyncio.shield(self._backfill_task)

    async def shutdown(self) -> None:
        """Stop polling and drop the background backfill, if one is running."""
        self.stop_polling()
        task, self._backfill_task = self._backfill_task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self.trigger.drain()
        logger.info("liked_tracks_manager_shutdown", extra={"loaded": len(self._store.current)})
