from __future__ import annotations

from .api import ApiConfig
from .database import DatabaseConfig
from .imports import ImportConfig
from .record_store import RecordStoreConfig
from .settings import AppConfig, RuntimeConfig, Settings, load_config

__all__ = [
    "ApiConfig",
    "AppConfig",
    "DatabaseConfig",
    "ImportConfig",
    "RecordStoreConfig",
    "RuntimeConfig",
    "Settings",
    "load_config",
]
