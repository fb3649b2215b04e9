"""
core/errors.py -- Error taxonomy shared by auth/, directory/ and api/.

Every error the application raises on purpose is an AppError subclass that
carries its HTTP status code. Services and dependencies raise these; the
exception handlers in api/main.py are the single place that turns them into
the {"success": false, "error": message} envelope.

Layer rule: core/ is the kernel. No imports from api/, auth/, or directory/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code: int = 500
    default_message: str = "Server Error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request."


class InvalidToken(AppError):
    status_code = 400
    default_message = "Invalid token"


class Unauthorized(AppError):
    status_code = 401
    default_message = "Not authorized to access this route"


class Forbidden(AppError):
    status_code = 403
    default_message = "Not authorized to perform this action"


class NotFound(AppError):
    status_code = 404
    default_message = "Resource not found"


class EmailDeliveryError(AppError):
    status_code = 500
    default_message = "Email could not be sent"
