"""Custom exception types for domain, API and client layers."""
from __future__ import annotations


class AppError(Exception):
    """Base app exception."""

    status_code = 500

    def __init__(self, description: str, status_code: int | None = None):
        super().__init__(description)
        self.description = description
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Validation failure for user input or stored records."""

    status_code = 400


class NotFoundError(AppError):
    """Requested record does not exist."""

    status_code = 404


class TransportError(AppError):
    """Network failure talking to the API; no response was received."""

    status_code = 503


class ApiError(AppError):
    """API answered with a non-success status or a failed envelope."""


class AuthenticationError(ApiError):
    """API rejected the session (401)."""

    status_code = 401


class ConflictError(AppError):
    """Operation clashes with the current state of a record."""

    status_code = 409
