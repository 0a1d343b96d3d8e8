from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_DEFAULT_ORIGINS: tuple[str, ...] = (
    "http://localhost:3000",
    "http://localhost:8080",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:8080",
)


class ApiConfig(BaseModel):
    """HTTP surface configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    allowed_origins: tuple[str, ...] = Field(
        default=_DEFAULT_ORIGINS, validation_alias="ALLOWED_ORIGINS"
    )

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _parse_origins(cls, value: Any) -> tuple[str, ...]:
        if value in (None, ""):
            return _DEFAULT_ORIGINS
        if isinstance(value, str):
            pieces = value.split(",")
        else:
            pieces = [str(item) for item in value]
        origins = tuple(piece.strip() for piece in pieces if piece.strip())
        return origins or _DEFAULT_ORIGINS
