"""Wiring for the liked tracks mirror.

Example:
    ```python
    config = load_config()
    configure_logging(config)
    async with LibraryClient(config.library.api_url) as client:
        manager = build_manager(config, client)
        await manager.initialize()
        ...
        await manager.shutdown()
    ```
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from likedmirror.adapters.library.client import LibraryClient, is_retryable_error
from likedmirror.adapters.library.fetcher import PageFetcher
from likedmirror.core.backoff import BackoffExecutor, RetryPolicy
from likedmirror.core.logging_utils import setup_json_logging
from likedmirror.services.notifier import Notifier
from likedmirror.sync.manager import LikedTracksManager

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from likedmirror.adapters.library.protocols import LibrarySource, NotificationSink
    from likedmirror.config.library import SyncConfig
    from likedmirror.config.settings import AppConfig


def configure_logging(config: AppConfig) -> None:
    runtime = config.runtime
    setup_json_logging(
        runtime.log_level,
        log_file=runtime.log_file,
        max_file_size=runtime.log_max_file_size,
        retention=runtime.log_retention,
    )


def build_retry_policy(
    sync: SyncConfig,
    on_retry: Callable[[int, Exception], None] | None = None,
    retry_if: Callable[[Exception], bool] | None = None,
) -> RetryPolicy:
    return RetryPolicy(
        max_retries=sync.retry_max_attempts,
        initial_delay=sync.retry_initial_delay_seconds,
        use_exponential_backoff=sync.retry_exponential_backoff,
        on_retry=on_retry,
        retry_if=retry_if,
    )


def build_manager(
    config: AppConfig,
    source: LibrarySource,
    *,
    sink: NotificationSink | None = None,
) -> LikedTracksManager:
    """Assemble a manager around ``source`` using ``config``.

    A ``LibraryClient`` source only has its transient errors retried; other
    sources have every error retried.
    """
    retry_if = is_retryable_error if isinstance(source, LibraryClient) else None
    fetcher = PageFetcher(
        source,
        policy=build_retry_policy(config.sync, retry_if=retry_if),
        executor=BackoffExecutor(),
        max_page_size=config.sync.max_page_size,
    )
    return LikedTracksManager(
        fetcher,
        config=config.sync,
        notifier=Notifier(sink, debug_mode=config.runtime.debug_mode),
    )


@asynccontextmanager
async def open_manager(
    config: AppConfig,
    *,
    sink: NotificationSink | None = None,
) -> AsyncIterator[LikedTracksManager]:
    """Open an HTTP client, initialize a manager on it and shut both down on exit."""
    async with LibraryClient(
        config.library.api_url, timeout=config.library.request_timeout_sec
    ) as client:
        manager = build_manager(config, client, sink=sink)
        try:
            await manager.initialize()
            yield manager
        finally:
            await manager.shutdown()
