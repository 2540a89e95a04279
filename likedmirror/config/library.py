from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

if TYPE_CHECKING:
    from typing import Self


class LibraryConfig(BaseModel):
    """Remote library source (liked tracks endpoint) configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_url: str = Field(
        default="http://localhost:8080/api/v1/me",
        validation_alias="LIBRARY_API_URL",
    )
    request_timeout_sec: float = Field(default=15.0, validation_alias="LIBRARY_REQUEST_TIMEOUT_SEC")

    @field_validator("api_url", mode="before")
    @classmethod
    def _validate_api_url(cls, value: Any) -> str:
        url = str(value or "").strip()
        if not url:
            return "http://localhost:8080/api/v1/me"
        if not url.startswith(("http://", "https://")):
            msg = "Library API URL must start with http:// or https://"
            raise ValueError(msg)
        return url.rstrip("/")

    @field_validator("request_timeout_sec", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> float:
        try:
            parsed = float(str(value if value not in (None, "") else 15.0))
        except ValueError as exc:
            msg = "Library request timeout must be a valid number"
            raise ValueError(msg) from exc
        if parsed <= 0 or parsed > 300:
            msg = "Library request timeout must be between 0 and 300 seconds"
            raise ValueError(msg)
        return parsed


class SyncConfig(BaseModel):
    """Liked tracks synchronization tuning."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    page_size: int = Field(default=50, validation_alias="LIKED_PAGE_SIZE")
    max_page_size: int = Field(default=100, validation_alias="LIKED_MAX_PAGE_SIZE")
    poll_interval_seconds: float = Field(default=180.0, validation_alias="LIKED_POLL_INTERVAL_SEC")
    backfill_delay_seconds: float = Field(
        default=0.5, validation_alias="LIKED_BACKFILL_DELAY_SEC"
    )
    debounce_interval_seconds: float = Field(
        default=10.0, validation_alias="LIKED_DEBOUNCE_INTERVAL_SEC"
    )
    retry_max_attempts: int = Field(default=3, validation_alias="LIKED_RETRY_MAX_ATTEMPTS")
    retry_initial_delay_seconds: float = Field(
        default=2.0, validation_alias="LIKED_RETRY_INITIAL_DELAY_SEC"
    )
    retry_exponential_backoff: bool = Field(
        default=True, validation_alias="LIKED_RETRY_EXPONENTIAL_BACKOFF"
    )
    backfill_on_start: bool = Field(default=True, validation_alias="LIKED_BACKFILL_ON_START")
    polling_enabled: bool = Field(default=True, validation_alias="LIKED_POLLING_ENABLED")

    @field_validator("page_size", "max_page_size", mode="before")
    @classmethod
    def _validate_page_sizes(cls, value: Any, info: ValidationInfo) -> int:
        default = cls.model_fields[info.field_name].default
        try:
            parsed = int(str(value if value not in (None, "") else default))
        except ValueError as exc:
            msg = f"{info.field_name.replace('_', ' ')} must be a valid integer"
            raise ValueError(msg) from exc
        if parsed < 1 or parsed > 1000:
            msg = f"{info.field_name.replace('_', ' ').capitalize()} must be between 1 and 1000"
            raise ValueError(msg)
        return parsed

    @field_validator("retry_max_attempts", mode="before")
    @classmethod
    def _validate_retry_attempts(cls, value: Any) -> int:
        try:
            parsed = int(str(value if value not in (None, "") else 3))
        except ValueError as exc:
            msg = "Retry attempts must be a valid integer"
            raise ValueError(msg) from exc
        if parsed < 1 or parsed > 10:
            msg = "Retry attempts must be between 1 and 10"
            raise ValueError(msg)
        return parsed

    @field_validator(
        "poll_interval_seconds",
        "backfill_delay_seconds",
        "debounce_interval_seconds",
        "retry_initial_delay_seconds",
        mode="before",
    )
    @classmethod
    def _validate_durations(cls, value: Any, info: ValidationInfo) -> float:
        default = cls.model_fields[info.field_name].default
        try:
            parsed = float(str(value if value not in (None, "") else default))
        except ValueError as exc:
            msg = f"{info.field_name.replace('_', ' ')} must be a valid number"
            raise ValueError(msg) from exc
        if parsed < 0:
            msg = f"{info.field_name.replace('_', ' ').capitalize()} cannot be negative"
            raise ValueError(msg)
        return parsed

    @field_validator("poll_interval_seconds")
    @classmethod
    def _validate_poll_interval(cls, value: float) -> float:
        if value < 1:
            msg = "Poll interval must be at least 1 second"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def _check_page_size_bounds(self) -> Self:
        if self.page_size > self.max_page_size:
            msg = "LIKED_PAGE_SIZE cannot exceed LIKED_MAX_PAGE_SIZE"
            raise ValueError(msg)
        return self
