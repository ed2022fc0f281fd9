"""Error taxonomy for the auth API.

Every error carries the HTTP status it maps to and a short category string.
Handlers in ``main.py`` render them as ``{"error": category, "message": message}``.
"""

from http import HTTPStatus
from typing import Any


class AuthError(Exception):
    """Base class for errors that are reported to the caller."""

    status_code: int = HTTPStatus.BAD_REQUEST
    category: str = "Bad Request"
    default_message: str = "Bad request"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.category, "message": self.message}


class ValidationError(AuthError):
    """Malformed or missing input."""

    default_message = "Please provide all required fields"


class ConflictError(AuthError):
    status_code = HTTPStatus.CONFLICT
    category = "Conflict"
    default_message = "User already exists"


class AuthenticationError(AuthError):
    """Bad login credentials. Same message whether the user exists or not."""

    status_code = HTTPStatus.UNAUTHORIZED
    category = "Unauthorized"
    default_message = "Invalid username or password"


class InvalidTokenError(AuthError):
    """Unknown, consumed or expired reset token."""

    default_message = "Invalid or expired reset token"


class UnauthenticatedError(AuthError):
    """Missing or invalid session token on a protected route."""

    status_code = HTTPStatus.UNAUTHORIZED
    category = "Unauthorized"
    default_message = "Not authenticated"


class InternalError(AuthError):
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    category = "Internal Server Error"
    default_message = "An unexpected error occurred."

    def __init__(self) -> None:
        # Internal details are logged where they happen, never returned.
        super().__init__()
