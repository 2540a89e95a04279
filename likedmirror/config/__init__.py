from __future__ import annotations

from .library import LibraryConfig, SyncConfig
from .settings import AppConfig, RuntimeConfig, Settings, load_config

__all__ = [
    "AppConfig",
    "LibraryConfig",
    "RuntimeConfig",
    "Settings",
    "SyncConfig",
    "load_config",
]
