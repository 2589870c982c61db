"""Service-level exceptions.

Services raise these; ``common.exception_handler`` turns them into the
``{"success": false, ...}`` envelope with the matching HTTP status.
"""

from typing import Any, Optional


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""
    status_code = 500
    code = "error"
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(ServiceError):
    """Raised when input is missing or malformed."""
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request data"

    REQUIRED_CODES = {"required", "blank", "null"}

    @classmethod
    def from_serializer_errors(cls, errors, required_fields=(), missing_message=None, message=None):
        """
        Build from DRF ``serializer.errors``; ``missing_message`` is used when
        any of ``required_fields`` was missing or blank.
        """
        for field in required_fields:
            if any(getattr(error, "code", None) in cls.REQUIRED_CODES for error in errors.get(field, [])):
                return cls(missing_message or message, details=errors)
        return cls(message, details=errors)


class AuthenticationError(ServiceError):
    """Raised when a session is missing, invalid or expired."""
    status_code = 401
    code = "authentication_failed"
    default_message = "Authentication required"


class AuthorizationError(ServiceError):
    """Raised when the caller's role does not permit the operation."""
    status_code = 403
    code = "forbidden"
    default_message = "Forbidden"


class NotFoundError(ServiceError):
    """Raised when an id does not match any record."""
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class ConflictError(ServiceError):
    """Raised when a unique field is already taken."""
    status_code = 409
    code = "conflict"
    default_message = "Already exists"


class InvalidStateError(ServiceError):
    """Raised when a booking cannot move to the requested status."""
    status_code = 400
    code = "invalid_state"
    default_message = "Invalid state transition"


class InternalError(ServiceError):
    status_code = 500
    code = "internal_error"
    default_message = "Internal server error"
