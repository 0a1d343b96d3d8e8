"""
Pydantic models for API response envelopes.
"""

from __future__ import annotations

import os
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.api.context import current_correlation_id
from app.api.exceptions import ErrorCode, ErrorType
from app.core.time_utils import UTC

APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
APP_BUILD: str | None = os.getenv("APP_BUILD") or None


class MetaInfo(BaseModel):
    """Metadata for all API responses."""

    correlation_id: str = ""
    timestamp: str = Field(
        default_factory=lambda: datetime.now(UTC).isoformat().replace("+00:00", "Z")
    )
    version: str = APP_VERSION
    build: str | None = APP_BUILD


class ErrorDetail(BaseModel):
    """Error details aligned to API error envelope."""

    code: str
    error_type: str = Field(default=ErrorType.INTERNAL.value, serialization_alias="errorType")
    message: str
    retryable: bool = False
    details: dict[str, Any] | None = None
    correlation_id: str = ""


class SuccessResponse(BaseModel):
    """Standard success response wrapper.

    When success=True, data is always present and non-null.
    """

    success: bool = True
    data: dict[str, Any]
    meta: MetaInfo = Field(default_factory=MetaInfo)


class ErrorResponse(BaseModel):
    """Standard error response wrapper."""

    success: bool = False
    error: ErrorDetail
    meta: MetaInfo = Field(default_factory=MetaInfo)


def build_meta(*, correlation_id: str | None = None) -> MetaInfo:
    """Construct meta with the context-aware correlation ID."""
    corr = correlation_id or current_correlation_id() or ""
    return MetaInfo(correlation_id=corr)


def success_response(
    data: BaseModel | dict[str, Any],
    *,
    correlation_id: str | None = None,
) -> dict[str, Any]:
    """Helper to build a standardized success response."""
    payload = data.model_dump() if isinstance(data, BaseModel) else data
    meta = build_meta(correlation_id=correlation_id)
    return SuccessResponse(data=payload, meta=meta).model_dump()


def make_error(
    code: str | ErrorCode,
    message: str,
    *,
    error_type: str | ErrorType | None = None,
    retryable: bool = False,
    details: dict[str, Any] | None = None,
) -> ErrorDetail:
    """
    Create an ErrorDetail with proper typing and defaults.

    Args:
        code: Error code (use ErrorCode enum for standard codes)
        message: Human-readable error message
        error_type: Error category, internal when omitted
        retryable: Whether client should retry
        details: Additional error context
    """
    code_str = code.value if isinstance(code, ErrorCode) else code
    if error_type is None:
        error_type = ErrorType.INTERNAL
    error_type_str = error_type.value if isinstance(error_type, ErrorType) else error_type

    return ErrorDetail(
        code=code_str,
        error_type=error_type_str,
        message=message,
        retryable=retryable,
        details=details,
    )


def error_response(
    detail: ErrorDetail,
    *,
    correlation_id: str | None = None,
) -> dict[str, Any]:
    """Helper to build a standardized error response."""
    corr = correlation_id or current_correlation_id() or ""
    if not detail.correlation_id:
        detail = detail.model_copy(update={"correlation_id": corr})
    meta = build_meta(correlation_id=corr)
    return ErrorResponse(error=detail, meta=meta).model_dump(by_alias=True)
