"""Protocol definitions (ports) for the liked tracks source.

The sync engine only depends on these, so tests and alternative sources can
stand in for the HTTP client.
"""

from __future__ import annotations

from typing import Any, Protocol


class LibrarySource(Protocol):
    async def get_tracks(self, *, offset: int, limit: int) -> dict[str, Any]: ...

    async def health_check(self) -> bool: ...


class NotificationSink(Protocol):
    def __call__(self, message: str, is_error: bool) -> None: ...
