"""HTTP client for the liked tracks endpoint."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from typing import Self

logger = logging.getLogger(__name__)

# HTTP status codes that are worth another attempt
RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}


def is_retryable_error(exc: Exception) -> bool:
    """Retry predicate for ``RetryPolicy.retry_if`` when the source is ``LibraryClient``."""
    return isinstance(exc, LibraryRetryableError)


class LibraryClientError(Exception):
    """Base exception for liked tracks source errors."""


class LibraryRetryableError(LibraryClientError):
    """Transient failure (timeouts, throttling, 5xx)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LibraryUnavailableError(LibraryClientError):
    """The source cannot be reached at all."""


class LibraryResponseError(LibraryClientError):
    """The source answered with a payload that is not a track page."""


class LibraryClient:
    """Async HTTP client for ``GET {api_url}/tracks``.

    The client does not retry on its own; retries belong to the page fetcher
    so that one policy governs every call.
    """

    DEFAULT_TIMEOUTS: dict[str, float] = {
        "get_tracks": 15.0,
        "health_check": 5.0,
    }

    def __init__(
        self,
        api_url: str,
        timeout: float = 15.0,
        *,
        headers: dict[str, str] | None = None,
        endpoint_timeouts: dict[str, float] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_url: Base URL of the library API (e.g., http://localhost:8080/api/v1/me)
            timeout: Default request timeout in seconds
            headers: Extra headers sent with every request
            endpoint_timeouts: Custom per-endpoint timeouts (overrides defaults)
            transport: Optional httpx transport, mainly for tests
        """
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.headers = {"Accept": "application/json", **(headers or {})}
        self.endpoint_timeouts = {**self.DEFAULT_TIMEOUTS}
        if endpoint_timeouts:
            self.endpoint_timeouts.update(endpoint_timeouts)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def get_timeout(self, endpoint: str) -> float:
        return self.endpoint_timeouts.get(endpoint, self.timeout)

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            headers=self.headers,
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise LibraryClientError("Client not initialized. Use async context manager.")
        return self._client

    async def get_tracks(self, *, offset: int, limit: int) -> dict[str, Any]:
        """Fetch one raw page of liked tracks.

        Args:
            offset: Index of the first track to return
            limit: Maximum number of tracks to return

        Returns:
            Decoded JSON object, e.g. ``{"items": [...], "totalLength": 120}``

        Raises:
            LibraryRetryableError: On timeouts, connection errors and retryable statuses
            LibraryClientError: On other HTTP errors
            LibraryResponseError: When the body is not a JSON object
        """
        try:
            response = await self.client.get(
                "/tracks",
                params={"offset": offset, "limit": limit},
                timeout=self.get_timeout("get_tracks"),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            if status_code in RETRYABLE_STATUS_CODES:
                raise LibraryRetryableError(
                    f"get_tracks returned HTTP {status_code}", status_code=status_code
                ) from exc
            raise LibraryClientError(f"get_tracks returned HTTP {status_code}") from exc
        except httpx.TransportError as exc:
            raise LibraryRetryableError(f"get_tracks transport error: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise LibraryResponseError("get_tracks returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise LibraryResponseError(
                f"get_tracks returned {type(data).__name__}, expected an object"
            )
        return data

    async def health_check(self) -> bool:
        """Check that the tracks endpoint answers a minimal page request."""
        try:
            response = await self.client.get(
                "/tracks",
                params={"offset": 0, "limit": 1},
                timeout=self.get_timeout("health_check"),
            )
            response.raise_for_status()
            return True
        except httpx.HTTPError as exc:
            logger.warning("library_health_check_failed", extra={"error": str(exc)})
            return False
