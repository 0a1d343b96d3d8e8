from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DatabaseConfig(BaseModel):
    """Database operation limits and timeouts configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    operation_timeout: float = Field(
        default=30.0,
        validation_alias="DB_OPERATION_TIMEOUT",
        description="Database operation timeout in seconds",
    )
    max_retries: int = Field(
        default=3,
        validation_alias="DB_MAX_RETRIES",
        description="Maximum retries for locked/busy database errors",
    )

    @field_validator("operation_timeout", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> float:
        if value in (None, ""):
            return 30.0
        try:
            parsed = float(str(value))
        except ValueError as exc:
            msg = "Database operation timeout must be a valid number"
            raise ValueError(msg) from exc
        if parsed <= 0:
            msg = "Database operation timeout must be positive"
            raise ValueError(msg)
        if parsed > 3600:
            msg = "Database operation timeout must be 3600 seconds or less"
            raise ValueError(msg)
        return parsed

    @field_validator("max_retries", mode="before")
    @classmethod
    def _validate_max_retries(cls, value: Any) -> int:
        if value in (None, ""):
            return 3
        try:
            parsed = int(str(value))
        except ValueError as exc:
            msg = "Database max retries must be a valid integer"
            raise ValueError(msg) from exc
        if parsed < 0 or parsed > 10:
            msg = "Database max retries must be between 0 and 10"
            raise ValueError(msg)
        return parsed
