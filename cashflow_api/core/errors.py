"""
Domain exceptions mapped to HTTP responses.

Every class carries an HTTP ``status_code`` and a stable ``error_code`` so clients
can tell failures apart without parsing the message text:

- validation_error (400)
- invalid_credentials (401)
- unauthorized (401)
- not_found (404)
- conflict (409)
- server_error (500)
"""
from typing import Optional


class ServiceError(Exception):
    """Base class for service-layer exceptions."""

    status_code: int = 400
    error_code: str = "validation_error"
    default_message: str = "Bad request"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ServiceError):
    """Malformed or out-of-range input (400)."""
    status_code = 400
    error_code = "validation_error"
    default_message = "Invalid request"


class AuthenticationError(ServiceError):
    """Bad credentials at login (401). Never says which field was wrong."""
    status_code = 401
    error_code = "invalid_credentials"
    default_message = "Invalid credentials"


class AuthorizationError(ServiceError):
    """Missing, invalid or revoked token (401)."""
    status_code = 401
    error_code = "unauthorized"
    default_message = "Unauthorized"


class NotFoundError(ServiceError):
    """Referenced resource does not exist (404)."""
    status_code = 404
    error_code = "not_found"
    default_message = "Resource not found"


class ConflictError(ServiceError):
    """Duplicate resource, e.g. a taken username (409)."""
    status_code = 409
    error_code = "conflict"
    default_message = "Resource conflict"


class ServerError(ServiceError):
    """Internal fault (500)."""
    status_code = 500
    error_code = "server_error"
    default_message = "An unexpected error occurred. Please try again later."


__all__ = [
    "ServiceError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "ServerError",
]
