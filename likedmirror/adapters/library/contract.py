"""Contract checks for a liked tracks source.

Incremental updates only diff the first page, which is correct only while the
source lists tracks newest-added first. ``verify_source_contract`` checks that
(and the other fields the sync engine relies on) against a real response;
``check_source_stability`` repeats one request to measure how often it fails.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from likedmirror.adapters.library.protocols import LibrarySource

logger = logging.getLogger(__name__)

ADDED_AT_FIELDS = ("addedAt", "added_at")
TOTAL_FIELDS = ("total", "totalCount", "totalLength", "unfilteredTotalLength")
CONTROL_FIELDS = ("offset", "limit", "next", "previous")

DEFAULT_STABILITY_CALLS = 5
DEFAULT_STABILITY_INTERVAL_SECONDS = 0.2


class ContractReport(BaseModel):
    """What a sample page says about the source's response shape."""

    item_count: int = 0
    added_at_field: str | None = None
    pagination_fields: list[str] = Field(default_factory=list)
    supports_pagination: bool = False
    newest_first: bool | None = None
    response_time_ms: float | None = None

    @property
    def has_added_at(self) -> bool:
        return self.added_at_field is not None

    @property
    def satisfied(self) -> bool:
        """True when head-diff updates can be trusted for this source."""
        return self.has_added_at and self.supports_pagination and self.newest_first is not False


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _items_of(raw: Any) -> list[Any]:
    if isinstance(raw, list):
        return raw
    if isinstance(raw, dict) and isinstance(raw.get("items"), list):
        return raw["items"]
    return []


def _is_newest_first(items: list[Any], field: str) -> bool | None:
    stamps = [_parse_timestamp(item.get(field)) for item in items if isinstance(item, dict)]
    if len(stamps) < 2 or any(stamp is None for stamp in stamps):
        return None
    try:
        return all(earlier >= later for earlier, later in zip(stamps, stamps[1:]))
    except TypeError:
        # naive and aware timestamps mixed in one page
        return None


def inspect_page_payload(raw: Any) -> ContractReport:
    """Inspect one raw page (a dict with ``items`` or a bare list of items)."""
    items = _items_of(raw)
    report = ContractReport(item_count=len(items))

    if items and isinstance(items[0], dict):
        report.added_at_field = next(
            (f"items[x].{name}" for name in ADDED_AT_FIELDS if name in items[0]), None
        )

    if isinstance(raw, dict):
        report.pagination_fields = [
            name for name in (*TOTAL_FIELDS, *CONTROL_FIELDS) if name in raw
        ]
    has_total = any(name in report.pagination_fields for name in TOTAL_FIELDS)
    has_control = any(name in report.pagination_fields for name in CONTROL_FIELDS)
    report.supports_pagination = has_total and has_control

    if report.added_at_field is not None:
        report.newest_first = _is_newest_first(items, report.added_at_field.rsplit(".", 1)[-1])
    return report


async def verify_source_contract(source: LibrarySource, limit: int = 50) -> ContractReport:
    """Fetch one raw page from ``source`` and report on its contract.

    Pagination control fields are rarely echoed back by the source, so the
    requested offset and limit are added to the payload before inspection
    unless the source already returned them.
    """
    started = time.perf_counter()
    raw = await source.get_tracks(offset=0, limit=limit)
    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

    payload = {"offset": 0, "limit": limit, **raw}
    report = inspect_page_payload(payload)
    report.response_time_ms = elapsed_ms

    log = logger.info if report.satisfied else logger.warning
    log(
        "liked_tracks_source_contract",
        extra={
            "item_count": report.item_count,
            "added_at_field": report.added_at_field,
            "pagination_fields": report.pagination_fields,
            "newest_first": report.newest_first,
            "latency_ms": elapsed_ms,
            "satisfied": report.satisfied,
        },
    )
    return report


class StabilityReport(BaseModel):
    """Outcome of repeated identical page requests."""

    attempts: int
    successes: int
    errors: list[str] = Field(default_factory=list)

    @property
    def success_rate(self) -> float:
        """Percentage of requests that succeeded."""
        return self.successes / self.attempts * 100 if self.attempts else 0.0


async def check_source_stability(
    source: LibrarySource,
    times: int = DEFAULT_STABILITY_CALLS,
    interval_seconds: float = DEFAULT_STABILITY_INTERVAL_SECONDS,
    *,
    limit: int = 50,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> StabilityReport:
    """Request the first page ``times`` times and count how many calls succeed.

    Failures are logged and counted, never raised. Calls are spaced
    ``interval_seconds`` apart.
    """
    if times < 1:
        msg = "times must be at least 1"
        raise ValueError(msg)
    sleep = sleep or asyncio.sleep
    report = StabilityReport(attempts=times, successes=0)

    for attempt in range(1, times + 1):
        try:
            await source.get_tracks(offset=0, limit=limit)
        except Exception as exc:
            report.errors.append(f"{type(exc).__name__}: {exc}")
            logger.warning(
                "liked_tracks_source_stability_call_failed",
                extra={"attempt": attempt, "attempts": times, "error": str(exc)},
            )
        else:
            report.successes += 1
        if attempt < times and interval_seconds > 0:
            await sleep(interval_seconds)

    log = logger.info if report.successes == times else logger.warning
    log(
        "liked_tracks_source_stability",
        extra={
            "attempts": times,
            "successes": report.successes,
            "success_rate": round(report.success_rate, 1),
        },
    )
    return report
