"""Pydantic models for the liked tracks library."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TrackArtist(BaseModel):
    """Contributor reference on a track."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    uri: str = ""


class TrackAlbum(BaseModel):
    """Container (album) reference on a track."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    uri: str = ""
    name: str = ""


class LikedTrack(BaseModel):
    """One entry of the liked collection. Identity is ``uri``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    uri: str = Field(min_length=1)
    name: str = ""
    artists: tuple[TrackArtist, ...] = ()
    album: TrackAlbum = Field(default_factory=TrackAlbum)
    added_at: datetime | None = Field(default=None, alias="addedAt")
    duration_ms: int = Field(default=0, alias="duration")

    @field_validator("artists", mode="before")
    @classmethod
    def _coerce_artists(cls, value: object) -> object:
        return () if value is None else value

    @field_validator("album", mode="before")
    @classmethod
    def _coerce_album(cls, value: object) -> object:
        return {} if value is None else value

    @field_validator("duration_ms", mode="before")
    @classmethod
    def _coerce_duration(cls, value: object) -> object:
        # Some clients wrap the duration as {"milliseconds": n}
        if isinstance(value, dict):
            return value.get("milliseconds", 0)
        return 0 if value is None else value


class TrackPage(BaseModel):
    """One fetched slice of the collection. Not retained after merging."""

    model_config = ConfigDict(frozen=True)

    items: tuple[LikedTrack, ...] = ()
    offset: int = 0
    limit: int = 0
    total: int = 0


class CacheStats(BaseModel):
    """Snapshot of cache metadata."""

    total: int
    loaded: int
    last_updated: datetime | None = None
    last_updated_display: str = ""
    is_fully_loaded: bool = False


class SyncStatus(str, Enum):
    """Outcome of a sync engine operation."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    UNCHANGED = "unchanged"
    ADDED = "added"
    BACKFILLED = "backfilled"
    RELOADED = "reloaded"
    FAILED = "failed"


class SyncResult(BaseModel):
    """Result of a sync engine operation."""

    operation: str
    status: SyncStatus = SyncStatus.COMPLETED
    fetches: int = 0
    items_added: int = 0
    added_uris: list[str] = Field(default_factory=list)
    previous_total: int = 0
    total: int = 0
    error: str | None = None
    duration_seconds: float = 0.0
