"""Global exception handlers for the bookmark vault API.

Provides consistent error responses across all endpoints with correlation ID tracking.
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as PydanticValidationError

from app.api.exceptions import (
    APIException,
    AuthenticationError,
    AuthorizationError,
    ErrorCode,
    ErrorType,
    ExternalAPIError,
    ResourceNotFoundError,
    ValidationError,
)
from app.api.models.responses import error_response, make_error
from app.domain.exceptions.domain_exceptions import (
    DomainException,
    OwnershipError,
    RemoteRepositoryError,
)
from app.domain.exceptions.domain_exceptions import (
    ResourceNotFoundError as DomainNotFoundError,
)
from app.domain.exceptions.domain_exceptions import (
    ValidationError as DomainValidationError,
)

logger = logging.getLogger(__name__)

RECORD_STORE_SERVICE = "record_store"


def _json_error(request: Request, exc: APIException) -> Response:
    correlation_id = getattr(request.state, "correlation_id", None)
    detail = make_error(
        code=exc.error_code,
        message=exc.message,
        error_type=exc.error_type,
        retryable=exc.retryable,
        details=exc.details or None,
    )
    if correlation_id:
        detail.correlation_id = correlation_id
    return JSONResponse(
        status_code=exc.status_code, content=error_response(detail, correlation_id=correlation_id)
    )


async def api_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle custom API exceptions."""
    # Type narrowing for FastAPI compatibility
    if not isinstance(exc, APIException):
        raise exc

    logger.error(
        "api_error",
        extra={
            "correlation_id": getattr(request.state, "correlation_id", None),
            "error_code": exc.error_code.value,
            "error_type": exc.error_type.value,
            "status_code": exc.status_code,
            "retryable": exc.retryable,
            "path": request.url.path,
            "error": exc.message,
        },
    )
    return _json_error(request, exc)


def to_api_exception(exc: DomainException) -> APIException:
    """Translate a domain exception into its HTTP-facing counterpart."""
    if isinstance(exc, DomainValidationError):
        return ValidationError(exc.message, details=exc.details or None)
    if isinstance(exc, OwnershipError):
        return AuthorizationError(exc.message, details=exc.details or None)
    if isinstance(exc, DomainNotFoundError):
        resource_id = exc.details.get("job_id") or exc.details.get("resource_id") or "unknown"
        translated = ResourceNotFoundError("Import job", resource_id)
        translated.message = exc.message
        return translated
    if isinstance(exc, RemoteRepositoryError):
        if exc.status_code == status.HTTP_401_UNAUTHORIZED:
            return AuthenticationError("Repository session is no longer valid")
        translated = ExternalAPIError(
            RECORD_STORE_SERVICE,
            exc.message,
            details={"upstream_status": exc.status_code} if exc.status_code else None,
        )
        translated.retryable = True
        return translated
    return APIException(
        message=exc.message,
        error_code=ErrorCode.INTERNAL_ERROR,
        details=exc.details or None,
        retryable=True,
    )


async def domain_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle exceptions raised by use cases."""
    if not isinstance(exc, DomainException):
        raise exc

    translated = to_api_exception(exc)
    log = logger.error if translated.status_code >= 500 else logger.warning
    log(
        "domain_error",
        extra={
            "correlation_id": getattr(request.state, "correlation_id", None),
            "exception": type(exc).__name__,
            "error_code": translated.error_code.value,
            "status_code": translated.status_code,
            "path": request.url.path,
            "error": exc.message,
        },
    )
    return _json_error(request, translated)


async def validation_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle request body and Pydantic validation errors."""
    # Type narrowing for FastAPI compatibility
    if not isinstance(exc, (PydanticValidationError, RequestValidationError)):
        raise exc

    correlation_id = getattr(request.state, "correlation_id", None)

    formatted_errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning(
        "request_validation_failed",
        extra={
            "correlation_id": correlation_id,
            "errors": formatted_errors,
            "path": request.url.path,
        },
    )

    detail = make_error(
        code=ErrorCode.VALIDATION_ERROR.value,
        message="Request validation failed",
        error_type=ErrorType.VALIDATION,
        retryable=False,
        details={"fields": formatted_errors},
    )
    if correlation_id:
        detail.correlation_id = correlation_id

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response(detail, correlation_id=correlation_id),
    )


async def database_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle database-related exceptions."""
    correlation_id = getattr(request.state, "correlation_id", None)

    logger.error(
        "database_error",
        exc_info=True,
        extra={"correlation_id": correlation_id, "path": request.url.path, "error": str(exc)},
    )

    detail = make_error(
        code=ErrorCode.DATABASE_ERROR.value,
        message="Database temporarily unavailable",
        error_type=ErrorType.INTERNAL,
        retryable=True,
    )
    if correlation_id:
        detail.correlation_id = correlation_id

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=error_response(detail, correlation_id=correlation_id),
    )


async def global_exception_handler(request: Request, exc: Exception) -> Response:
    """Catch-all handler for unexpected exceptions.

    Job state is durable, so the failed call can always be retried.
    """
    correlation_id = getattr(request.state, "correlation_id", None)

    logger.error(
        "unhandled_exception",
        exc_info=True,
        extra={"correlation_id": correlation_id, "path": request.url.path, "error": str(exc)},
    )

    debug_mode = bool(getattr(request.app.state, "debug_errors", False))
    message = str(exc) if debug_mode else "An internal server error occurred"

    detail = make_error(
        code=ErrorCode.INTERNAL_ERROR.value,
        message=message,
        error_type=ErrorType.INTERNAL,
        retryable=True,
    )
    if correlation_id:
        detail.correlation_id = correlation_id

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response(detail, correlation_id=correlation_id),
    )
