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
from pydantic_settings import BaseSettings, SettingsConfigDict

from .api import ApiConfig
from .database import DatabaseConfig
from .imports import ImportConfig
from .record_store import RecordStoreConfig

logger = logging.getLogger(__name__)


class RuntimeConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    db_path: str = Field(default="/data/bookmarks.db", validation_alias="DB_PATH")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")

    @field_validator("db_path", mode="before")
    @classmethod
    def _validate_db_path(cls, value: Any) -> str:
        path = str(value or "/data/bookmarks.db").strip()
        return path or "/data/bookmarks.db"

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: Any) -> str:
        log_level = str(value or "INFO").upper()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if log_level not in valid_levels:
            msg = f"Invalid log level: {value}. Must be one of {valid_levels}"
            raise ValueError(msg)
        return log_level

    @field_validator("log_file", mode="before")
    @classmethod
    def _validate_log_file(cls, value: Any) -> str | None:
        if value in (None, ""):
            return None
        return str(value).strip() or None


@dataclass(frozen=True)
class AppConfig:
    runtime: RuntimeConfig
    database: DatabaseConfig
    imports: ImportConfig
    record_store: RecordStoreConfig
    api: ApiConfig


class Settings(BaseSettings):
    """Application settings loaded automatically from environment variables.

    Uses pydantic-settings for automatic environment variable loading.
    Nested models are populated by matching validation_alias on each field.
    """

    model_config = SettingsConfigDict(
        extra="ignore",
        populate_by_name=True,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    imports: ImportConfig = Field(default_factory=ImportConfig)
    record_store: RecordStoreConfig = Field(default_factory=RecordStoreConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    @model_validator(mode="before")
    @classmethod
    def _build_nested_from_env(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Build nested config objects from flat environment variables.

        Constructor arguments take precedence over the process environment.
        """
        if not isinstance(data, dict):
            return data

        result = dict(data)
        merged_source = {**dict(os.environ), **data}

        for field_name, field_info in cls.model_fields.items():
            annotation = field_info.annotation
            if not isinstance(annotation, type) or not issubclass(annotation, BaseModel):
                continue

            nested_data: dict[str, Any] = {}
            for nested_field_name, nested_field in annotation.model_fields.items():
                env_value = cls._resolve_env_value(merged_source, nested_field)
                if env_value is not None:
                    nested_data[nested_field_name] = env_value

            if nested_data:
                if field_name in result and isinstance(result[field_name], dict):
                    result[field_name] = {**nested_data, **result[field_name]}
                else:
                    result[field_name] = nested_data

        return result

    @staticmethod
    def _resolve_env_value(data: dict[str, Any], field: Any) -> Any | None:
        """Resolve environment variable value for a field using its aliases."""
        aliases: list[str] = []
        alias = field.validation_alias
        if isinstance(alias, AliasChoices):
            aliases.extend(choice for choice in alias.choices if isinstance(choice, str))
        elif isinstance(alias, str):
            aliases.append(alias)
        if field.alias:
            aliases.append(field.alias)

        for name in aliases:
            if name in data:
                return data[name]
        return None

    def as_app_config(self) -> AppConfig:
        return AppConfig(
            runtime=self.runtime,
            database=self.database,
            imports=self.imports,
            record_store=self.record_store,
            api=self.api,
        )


def load_config(**overrides: Any) -> AppConfig:
    """Load application configuration from environment variables.

    Uses pydantic-settings to automatically load from:
    1. Environment variables
    2. .env file (if present)

    Args:
        **overrides: Section overrides, e.g. ``imports={"job_max_age_hours": 6}``.

    Returns:
        Immutable AppConfig instance with all configuration sections.

    Raises:
        RuntimeError: If configuration validation fails.
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as exc:
        msg = f"Configuration validation failed: {exc}"
        raise RuntimeError(msg) from exc

    logger.debug(
        "config_loaded",
        extra={
            "db_path": settings.runtime.db_path,
            "record_store_url": settings.record_store.service_url,
            "job_max_age_hours": settings.imports.job_max_age_hours,
        },
    )
    return settings.as_app_config()
