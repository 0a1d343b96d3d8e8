from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

_NSID_MAX_LENGTH = 317


class RecordStoreConfig(BaseModel):
    """Remote bookmark repository (XRPC record store) configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    service_url: str = Field(
        default="http://localhost:2583",
        validation_alias="RECORD_STORE_URL",
    )
    timeout_sec: float = Field(default=30.0, validation_alias="RECORD_STORE_TIMEOUT_SEC")
    max_retries: int = Field(default=3, validation_alias="RECORD_STORE_MAX_RETRIES")
    bookmark_collection: str = Field(
        default="community.lexicon.bookmarks.bookmark",
        validation_alias="BOOKMARK_COLLECTION",
    )
    tag_collection: str = Field(default="app.bookmarkvault.tag", validation_alias="TAG_COLLECTION")
    annotation_collection: str = Field(
        default="app.bookmarkvault.annotation",
        validation_alias="ANNOTATION_COLLECTION",
    )

    @field_validator("service_url", mode="before")
    @classmethod
    def _validate_service_url(cls, value: Any) -> str:
        url = str(value or "").strip()
        if not url:
            return "http://localhost:2583"
        if not url.startswith(("http://", "https://")):
            msg = "Record store URL must start with http:// or https://"
            raise ValueError(msg)
        return url.rstrip("/")

    @field_validator("timeout_sec", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> float:
        if value in (None, ""):
            return 30.0
        try:
            parsed = float(str(value))
        except ValueError as exc:
            msg = "Record store timeout must be a valid number"
            raise ValueError(msg) from exc
        if parsed <= 0 or parsed > 600:
            msg = "Record store timeout must be between 0 and 600 seconds"
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
            msg = "Record store max retries must be a valid integer"
            raise ValueError(msg) from exc
        if parsed < 0 or parsed > 10:
            msg = "Record store max retries must be between 0 and 10"
            raise ValueError(msg)
        return parsed

    @field_validator("bookmark_collection", "tag_collection", "annotation_collection", mode="before")
    @classmethod
    def _validate_collection(cls, value: Any, info: ValidationInfo) -> str:
        default = cls.model_fields[info.field_name].default
        nsid = str(value or default).strip()
        if nsid.count(".") < 2 or len(nsid) > _NSID_MAX_LENGTH or " " in nsid:
            msg = f"{info.field_name.replace('_', ' ')} must be a dotted collection identifier"
            raise ValueError(msg)
        return nsid
