"""Exceptions and error codes for the bookmark vault API.

Every error response carries a code, a type the client can branch on and a
retryable flag.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes for API responses."""

    # Client errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    EXTERNAL_API_ERROR = "EXTERNAL_API_ERROR"


class ErrorType(str, Enum):
    """Categories of errors for client handling."""

    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    EXTERNAL_SERVICE = "external_service"
    INTERNAL = "internal"


_ERROR_TYPE_MAP: dict[ErrorCode, ErrorType] = {
    ErrorCode.VALIDATION_ERROR: ErrorType.VALIDATION,
    ErrorCode.UNAUTHORIZED: ErrorType.AUTHENTICATION,
    ErrorCode.FORBIDDEN: ErrorType.AUTHORIZATION,
    ErrorCode.NOT_FOUND: ErrorType.NOT_FOUND,
    ErrorCode.INTERNAL_ERROR: ErrorType.INTERNAL,
    ErrorCode.DATABASE_ERROR: ErrorType.INTERNAL,
    ErrorCode.EXTERNAL_API_ERROR: ErrorType.EXTERNAL_SERVICE,
}

_RETRYABLE_CODES: set[ErrorCode] = {
    ErrorCode.DATABASE_ERROR,
    ErrorCode.EXTERNAL_API_ERROR,
}


class APIException(Exception):
    """Base exception for all API errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
        error_type: ErrorType | None = None,
        retryable: bool | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        self.error_type = error_type or _ERROR_TYPE_MAP.get(error_code, ErrorType.INTERNAL)
        self.retryable = retryable if retryable is not None else (error_code in _RETRYABLE_CODES)


class ValidationError(APIException):
    """Raised when input is rejected before any work is done."""

    def __init__(
        self, message: str, details: dict[str, Any] | None = None, status_code: int = 400
    ):
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            status_code=status_code,
            details=details,
        )


class AuthenticationError(APIException):
    """Raised when the caller has no usable repository session."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            error_code=ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class AuthorizationError(APIException):
    """Raised when a resource exists but belongs to someone else."""

    def __init__(self, message: str = "Access denied", details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.FORBIDDEN,
            status_code=403,
            details=details,
        )


class ResourceNotFoundError(APIException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: int | str):
        super().__init__(
            message=f"{resource_type} with ID {resource_id} not found",
            error_code=ErrorCode.NOT_FOUND,
            status_code=404,
            details={"resource_type": resource_type, "resource_id": str(resource_id)},
        )


class DatabaseError(APIException):
    """Raised when database operations fail."""

    def __init__(self, message: str = "Database temporarily unavailable"):
        super().__init__(
            message=message,
            error_code=ErrorCode.DATABASE_ERROR,
            status_code=503,
        )


class ExternalAPIError(APIException):
    """Raised when the remote record store fails."""

    def __init__(
        self,
        service_name: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        full_message = f"{service_name} error"
        if message:
            full_message += f": {message}"

        super().__init__(
            message=full_message,
            error_code=ErrorCode.EXTERNAL_API_ERROR,
            status_code=502,
            details={"service": service_name, **(details or {})},
        )
