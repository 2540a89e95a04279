from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.fields import FieldInfo  # noqa: TC002
from pydantic_settings import BaseSettings, SettingsConfigDict

from .library import LibraryConfig, SyncConfig

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class RuntimeConfig(BaseModel):
    """Process-level options: logging sinks and notification mode."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    log_max_file_size: str = Field(default="50 MB", validation_alias="LOG_MAX_FILE_SIZE")
    log_retention: str = Field(default="14 days", validation_alias="LOG_RETENTION")
    # debug mode shows loading/error notifications instead of success/warning ones
    debug_mode: bool = Field(default=False, validation_alias="DEBUG_MODE")

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> str:
        if isinstance(value, int):
            value = logging.getLevelName(value)
        level = str(value or "INFO").strip().upper()
        if level == "WARN":
            level = "WARNING"
        if level not in _LOG_LEVELS:
            msg = f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}, got {value!r}"
            raise ValueError(msg)
        return level

    @field_validator("log_file", mode="before")
    @classmethod
    def _normalize_log_file(cls, value: Any) -> str | None:
        path = str(value).strip() if value is not None else ""
        if "\x00" in path:
            msg = "LOG_FILE contains a NUL byte"
            raise ValueError(msg)
        return path or None


@dataclass(frozen=True)
class AppConfig:
    library: LibraryConfig
    sync: SyncConfig
    runtime: RuntimeConfig


def _variable_names(field: FieldInfo) -> list[str]:
    """Environment variable names a nested config field answers to."""
    alias = field.validation_alias
    if isinstance(alias, AliasChoices):
        names = [choice for choice in alias.choices if isinstance(choice, str)]
    else:
        names = [alias] if isinstance(alias, str) else []
    if field.alias:
        names.append(field.alias)
    return names


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env``.

    Nested models are populated by matching ``validation_alias`` on each field,
    so every option is a flat environment variable.
    """

    model_config = SettingsConfigDict(
        extra="ignore",
        populate_by_name=True,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    library: LibraryConfig = Field(default_factory=LibraryConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)

    @model_validator(mode="before")
    @classmethod
    def _build_nested_from_env(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Fill each config section from its fields' flat variable names.

        Keyword arguments win over ``os.environ``; an explicit section dict
        wins over both for the keys it sets.
        """
        if not isinstance(data, dict):
            return data

        lookup = {**os.environ, **data}
        result = dict(data)
        for section, info in cls.model_fields.items():
            model = info.annotation
            if not (isinstance(model, type) and issubclass(model, BaseModel)):
                continue

            from_env = {
                name: value
                for name, field in model.model_fields.items()
                if (value := cls._first_present(lookup, _variable_names(field))) is not None
            }
            if not from_env:
                continue
            explicit = result.get(section)
            result[section] = {**from_env, **explicit} if isinstance(explicit, dict) else from_env
        return result

    @staticmethod
    def _first_present(lookup: dict[str, Any], names: list[str]) -> Any | None:
        return next((lookup[name] for name in names if name in lookup), None)

    def as_app_config(self) -> AppConfig:
        return AppConfig(library=self.library, sync=self.sync, runtime=self.runtime)


def load_config(**overrides: Any) -> AppConfig:
    """Load application configuration from the environment.

    Args:
        **overrides: Section overrides, e.g. ``sync={"page_size": 20}``

    Returns:
        Immutable AppConfig instance.

    Raises:
        RuntimeError: If configuration validation fails.
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as exc:
        msg = f"Configuration validation failed: {exc}"
        raise RuntimeError(msg) from exc
    return settings.as_app_config()
