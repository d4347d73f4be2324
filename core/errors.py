"""
core/errors.py -- Domain error taxonomy shared by the stores and the API.

Stores raise these; api/main.py turns them into the standard error envelope
({"error": {"code": ..., "message": ...}}) with the matching status code.
Stores never raise HTTPException -- they know nothing about HTTP.

Layer rule: core/ is the kernel. No imports from api/, auth/, or entries/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors that map onto a client-visible status code."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(AppError):
    status_code = 400
    code = "invalid_input"
    default_message = "Request is missing required fields or contains invalid values."


class Unauthorized(AppError):
    """Bad credentials or a missing/invalid session.

    The message is deliberately generic. Callers must not say which half of
    a credential pair was wrong.
    """

    status_code = 401
    code = "unauthorized"
    default_message = "Authentication required."


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    default_message = "Not found."


class Conflict(AppError):
    status_code = 409
    code = "conflict"
    default_message = "Resource already exists."


class Transient(AppError):
    """Storage or connectivity failure. Not retried here; the caller may retry."""

    status_code = 503
    code = "storage_unavailable"
    default_message = "Storage is temporarily unavailable. Try again."
