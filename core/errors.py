"""
core/errors.py -- Domain error taxonomy for TaskGuard.

Every failure the authorization and audit core can surface is a TaskGuardError
subclass. Each class carries the HTTP status and the machine-readable error
code the API layer renders, so api/main.py needs exactly one exception handler
for the whole family.

Layer rule: core/ is the kernel. No imports from api/, auth/, audit/, or tasks/.
"""

from __future__ import annotations


class TaskGuardError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class InvalidCredentials(TaskGuardError):
    """Unknown username or wrong password at login. Never says which."""

    status_code = 401
    code = "bad_credentials"
    message = "Invalid username or password."


class InvalidToken(TaskGuardError):
    """Bearer token is missing, unsigned, tampered, expired, or malformed."""

    status_code = 401
    code = "unauthorized"
    message = "Authentication required."


class Forbidden(TaskGuardError):
    status_code = 403
    code = "forbidden"
    message = "You do not have permission to perform this action."


class NotFound(TaskGuardError):
    """Resource is absent or outside the actor's visibility.

    The two cases are deliberately indistinguishable to the caller.
    """

    status_code = 404
    code = "not_found"
    message = "Resource not found."


class Conflict(TaskGuardError):
    """A compare-and-swap update lost against a concurrent writer."""

    status_code = 409
    code = "conflict"
    message = "The resource was modified by another request. Reload and retry."


class StoreUnavailable(TaskGuardError):
    """The backing database could not be reached. Fatal for the request; never retried."""

    status_code = 503
    code = "store_unavailable"
    message = "The data store is unavailable."
