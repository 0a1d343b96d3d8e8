"""Domain-specific exceptions.

These exceptions represent business rule violations and domain errors.
They are raised by use cases and translated to HTTP errors by the API layer.
"""


class DomainException(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        """Initialize domain exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(DomainException):
    """Raised when caller input is rejected before any state is created."""


class InvalidStateTransitionError(DomainException):
    """Raised when an invalid state transition is attempted."""


class ResourceNotFoundError(DomainException):
    """Raised when a requested resource does not exist."""


class OwnershipError(DomainException):
    """Raised when a resource exists but belongs to a different owner."""


class ImportJobNotFoundError(ResourceNotFoundError):
    def __init__(self, job_id: str) -> None:
        super().__init__(f"Import job {job_id} not found or expired", details={"job_id": job_id})


class ImportJobOwnershipError(OwnershipError):
    def __init__(self, job_id: str) -> None:
        super().__init__(
            f"Import job {job_id} belongs to a different owner", details={"job_id": job_id}
        )


class RemoteRepositoryError(DomainException):
    """Raised when the owner's remote record store rejects or fails a call.

    ``retryable`` tells callers whether the same call may succeed later.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        *,
        status_code: int | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code
        self.retryable = retryable
