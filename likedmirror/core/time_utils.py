from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def format_local(value: datetime | None, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
    """Render an aware datetime in the local timezone, or an empty string."""
    if value is None:
        return ""
    return value.astimezone().strftime(fmt)
