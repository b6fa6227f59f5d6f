"""Authorization error taxonomy.

Every error here is detected at the guard or handler boundary and turned into
an HTTP response by ``atelier.core.error_handlers``. None of them are transient,
so none are retried.
"""

from fastapi import status


class AppError(Exception):
    """Base exception carrying the HTTP status and a stable error code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "UNKNOWN_ERROR"
    default_message: str = "An error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(AppError):
    """No session, or the session could not be verified."""
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"
    default_message = "Not authenticated"


class AccountNotActive(AppError):
    """Valid session, but the account is disabled or still invited."""
    status_code = status.HTTP_403_FORBIDDEN
    code = "ACCOUNT_NOT_ACTIVE"
    default_message = "Your account is not active"


class InsufficientAuthority(AppError):
    """Hierarchy or permission check failed."""
    status_code = status.HTTP_403_FORBIDDEN
    code = "INSUFFICIENT_AUTHORITY"
    default_message = "You do not have permission to perform this action"


class NotFound(AppError):
    """Missing target, or a target that lives in another tenant."""
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Resource not found"


class InvalidState(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_STATE"
    default_message = "Invalid request"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    default_message = "Resource already exists"


class ConcurrentModification(AppError):
    """A conditional update matched no row because another request got there first."""
    status_code = status.HTTP_409_CONFLICT
    code = "CONCURRENT_MODIFICATION"
    default_message = "The record was modified by another request, please retry"


class SystemConfigurationError(AppError):
    """A required system role row is missing."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "SYSTEM_CONFIGURATION_ERROR"
    default_message = "System configuration error"
