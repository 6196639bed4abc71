from __future__ import annotations

__all__ = [
    "AccessDeniedError",
    "AuthenticationError",
    "GumboardError",
    "NotFoundError",
    "PersistenceError",
    "ValidationError",
]


class GumboardError(Exception):
    """Base domain error for the board service."""

    status_code: int = 500


class ValidationError(GumboardError):
    """Raised on malformed mutation payloads (rejected before diff/notify)."""

    status_code = 400


class AuthenticationError(GumboardError):
    """Raised when the acting user cannot be identified."""

    status_code = 401


class AccessDeniedError(GumboardError):
    """Raised when the actor may not touch the requested board or note."""

    status_code = 403


class NotFoundError(GumboardError):
    """Raised when a note, item or board does not exist (or is soft-deleted)."""

    status_code = 404


class PersistenceError(GumboardError):
    """Raised when a write fails; the request aborts and nothing is notified."""

    status_code = 500
