"""Domain exceptions mapped to HTTP responses by the global error handler."""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base class for errors that carry their own HTTP status."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, details: Any = None) -> None:  # noqa: ANN401
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationFailedError(AppError):
    """Request payload failed validation. ``details`` lists the field errors."""

    status_code = 400
    default_message = "Validation failed"


class ConflictError(AppError):
    """The write would duplicate an existing record."""

    status_code = 400
    default_message = "Resource already exists"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Authentication required"


class NotAuthenticatedError(AuthenticationError):
    """No session was presented with the request."""

    default_message = "Authentication required"


class InvalidCredentialsError(AuthenticationError):
    """Credentials were presented but rejected."""

    default_message = "Invalid email or password"


class AuthorizationError(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"
