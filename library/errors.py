"""
Error taxonomy shared by the workflow and the HTTP layer.

Stores signal failure with booleans or ``None``; callers raise one of these.
"""

from typing import Any, Optional


class LibraryError(Exception):
    """Base class for failures reported to API clients."""

    status_code = 500
    default_message = "An error occurred"

    def __init__(self, message: Optional[str] = None, detail: Any = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class ValidationFailure(LibraryError):
    """Missing or malformed input."""
    status_code = 400
    default_message = "Validation failed"


class AlreadyExists(LibraryError):
    """Duplicate username on registration."""
    status_code = 400
    default_message = "Username already exists"


class NotFound(LibraryError):
    """Book, author, title or review absent."""
    status_code = 404
    default_message = "Resource not found"


class Unauthenticated(LibraryError):
    """No credential was presented."""
    status_code = 401
    default_message = "User not logged in"


class InvalidCredential(LibraryError):
    """A credential was presented but is forged, malformed or expired."""
    status_code = 403
    default_message = "User not authenticated"


class LoginFailed(LibraryError):
    """Username/password pair did not authenticate."""
    status_code = 401
    default_message = "Invalid username or password"


class RateLimitExceeded(LibraryError):
    """Too many requests from one client in the current window."""
    status_code = 429
    default_message = "Too many requests, please try again later."

    def __init__(self, message: Optional[str] = None, retry_after: int = 0, headers: Optional[dict] = None):
        super().__init__(message)
        self.retry_after = retry_after
        self.headers = headers or {}


class InternalFailure(LibraryError):
    """Unexpected failure, e.g. the hashing backend raised."""
    status_code = 500
    default_message = "Internal server error"
