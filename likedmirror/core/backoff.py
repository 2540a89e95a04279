"""Bounded retry with exponential or fixed backoff.

Shared by the page fetcher and anything else that wraps a fallible
coroutine. Attempts are strictly sequential and carry no jitter, so the
total time spent waiting is bounded by the sum of the configured delays.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY = 2.0  # seconds


def backoff_delay(attempt: int, initial_delay: float, *, exponential: bool = True) -> float:
    """Delay to wait after failed attempt ``attempt`` (1-indexed).

    Exponential mode doubles the delay for every failed attempt:
    ``initial_delay * 2 ** (attempt - 1)``. Fixed mode always returns
    ``initial_delay``.
    """
    if attempt < 1:
        msg = "attempt is 1-indexed"
        raise ValueError(msg)
    if not exponential:
        return initial_delay
    return initial_delay * (2 ** (attempt - 1))


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try an operation and how long to wait in between."""

    max_retries: int = DEFAULT_MAX_RETRIES
    initial_delay: float = DEFAULT_INITIAL_DELAY
    use_exponential_backoff: bool = True
    on_retry: Callable[[int, Exception], None] | None = None
    # None retries every error; otherwise only errors the predicate accepts
    retry_if: Callable[[Exception], bool] | None = None

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            msg = "max_retries must be at least 1"
            raise ValueError(msg)
        if self.initial_delay < 0:
            msg = "initial_delay cannot be negative"
            raise ValueError(msg)

    def delay_for(self, attempt: int) -> float:
        return backoff_delay(attempt, self.initial_delay, exponential=self.use_exponential_backoff)

    def should_retry(self, exc: Exception) -> bool:
        return self.retry_if is None or self.retry_if(exc)


class BackoffExecutor:
    """Run a coroutine factory until it succeeds or the policy is exhausted."""

    def __init__(self, sleep: Callable[[float], Awaitable[None]] | None = None) -> None:
        self._sleep = sleep or asyncio.sleep

    async def run(
        self,
        func: Callable[[], Awaitable[T]],
        policy: RetryPolicy | None = None,
        *,
        operation_name: str = "operation",
    ) -> T:
        """Execute ``func`` under ``policy``.

        Args:
            func: Zero-argument callable returning a fresh awaitable per attempt
            policy: Retry policy; defaults to three exponential attempts
            operation_name: Name of operation for logging

        Returns:
            Result of the first successful attempt

        Raises:
            Exception: The error of the last attempt once all attempts failed, or the
                first error that the policy's ``retry_if`` rejects
        """
        policy = policy or RetryPolicy()

        for attempt in range(1, policy.max_retries + 1):
            try:
                return await func()
            except Exception as exc:
                if not policy.should_retry(exc):
                    logger.warning(
                        "backoff_not_retryable",
                        extra={
                            "operation": operation_name,
                            "attempt": attempt,
                            "error_type": type(exc).__name__,
                            "error": str(exc),
                        },
                    )
                    raise
                if attempt >= policy.max_retries:
                    logger.warning(
                        "backoff_exhausted",
                        extra={
                            "operation": operation_name,
                            "attempts": attempt,
                            "error": str(exc),
                        },
                    )
                    raise

                delay = policy.delay_for(attempt)
                logger.warning(
                    "backoff_retry",
                    extra={
                        "operation": operation_name,
                        "attempt": attempt,
                        "max_retries": policy.max_retries,
                        "delay_seconds": delay,
                        "error": str(exc),
                    },
                )
                if policy.on_retry is not None:
                    try:
                        policy.on_retry(attempt, exc)
                    except Exception:
                        logger.exception(
                            "backoff_retry_observer_failed",
                            extra={"operation": operation_name, "attempt": attempt},
                        )
                await self._sleep(delay)

        # max_retries >= 1 means the loop always returns or raises
        msg = f"{operation_name} made no attempts"
        raise RuntimeError(msg)
