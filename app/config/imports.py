from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

# Bounds for the integer settings below, keyed by field name
_INT_BOUNDS: dict[str, tuple[int, int]] = {
    "job_max_age_hours": (1, 720),
    "sweep_interval_minutes": (1, 1440),
    "chunk_claim_timeout_sec": (10, 3600),
    "max_candidates": (1, 1_000_000),
}


class ImportConfig(BaseModel):
    """Bookmark import pipeline configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    job_max_age_hours: int = Field(
        default=24,
        validation_alias="IMPORT_JOB_MAX_AGE_HOURS",
        description="Jobs older than this are deleted by the janitor sweep",
    )
    sweep_interval_minutes: int = Field(
        default=60,
        validation_alias="IMPORT_SWEEP_INTERVAL_MINUTES",
        description="How often the scheduler runs the janitor sweep",
    )
    sweep_enabled: bool = Field(default=True, validation_alias="IMPORT_SWEEP_ENABLED")
    chunk_claim_timeout_sec: int = Field(
        default=300,
        validation_alias="IMPORT_CHUNK_CLAIM_TIMEOUT_SEC",
        description="Seconds after which an unfinished chunk claim may be taken over",
    )
    max_candidates: int = Field(
        default=50_000,
        validation_alias="IMPORT_MAX_CANDIDATES",
        description="Upper bound on candidates accepted by a single import",
    )

    @field_validator(
        "job_max_age_hours",
        "sweep_interval_minutes",
        "chunk_claim_timeout_sec",
        "max_candidates",
        mode="before",
    )
    @classmethod
    def _validate_bounded_int(cls, value: Any, info: ValidationInfo) -> int:
        default = cls.model_fields[info.field_name].default
        try:
            parsed = int(str(value if value not in (None, "") else default))
        except ValueError as exc:
            msg = f"{info.field_name.replace('_', ' ')} must be a valid integer"
            raise ValueError(msg) from exc
        low, high = _INT_BOUNDS[info.field_name]
        if parsed < low or parsed > high:
            msg = f"{info.field_name.replace('_', ' ')} must be between {low} and {high}"
            raise ValueError(msg)
        return parsed
