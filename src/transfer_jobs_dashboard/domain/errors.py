"""Domain exceptions for dashboard operations."""

from __future__ import annotations


class DashboardError(Exception):
    """Base class for dashboard errors."""


class AuthError(DashboardError):
    """Raised when the token endpoint refuses or fails a credential exchange."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class FetchError(DashboardError):
    """Raised when job or transfer listing fails."""


class ActionError(DashboardError):
    """Raised when a job control operation is rejected or fails."""


class ConfirmationError(DashboardError):
    """Raised when a destructive operation is not confirmed."""


__all__ = [
    "ActionError",
    "AuthError",
    "ConfirmationError",
    "DashboardError",
    "FetchError",
]
