"""
Error taxonomy for the pipeline engine.

Illegal transitions are not errors: TransitionValidator returns a Reject
value and callers treat it as a silent no-op. Everything here is raised by
the collaborator client or the optimistic state protocol.
"""

from typing import Any


class PipelineError(Exception):
    """Base exception for pipeline engine errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class CollaboratorError(PipelineError):
    """The external action surface rejected or failed a call."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
        response_data: dict | None = None,
    ):
        super().__init__(message, details={"status_code": status_code, "error_code": error_code})
        self.status_code = status_code
        self.error_code = error_code
        self.response_data = response_data or {}


class DuplicateInvitationError(CollaboratorError):
    """A form invitation was already sent for this application."""


class UnauthorizedError(CollaboratorError):
    """The operator may not act on this application."""


class NotFoundError(PipelineError):
    """Application or stage is not known to the board."""

    def __init__(self, resource: str, resource_id: int):
        super().__init__(f"{resource} not found: {resource_id}")
        self.resource = resource
        self.resource_id = resource_id


class OptimisticRollbackError(PipelineError):
    """A single-item authoritative call failed and local state was restored."""

    def __init__(self, application_id: int, cause: BaseException):
        super().__init__(
            f"Update for application {application_id} failed and was reverted: {cause}",
            details={"application_id": application_id},
        )
        self.application_id = application_id
        self.cause = cause


class InvalidCommandError(PipelineError, ValueError):
    """A bulk command or transition request could not be built."""


def classify_failure(exc: BaseException) -> str:
    """Map a per-item exception to its reported failure kind."""
    if isinstance(exc, OptimisticRollbackError):
        exc = exc.cause
    if isinstance(exc, DuplicateInvitationError):
        return "duplicate-invitation"
    if isinstance(exc, UnauthorizedError):
        return "unauthorized"
    if isinstance(exc, CollaboratorError):
        if exc.status_code == 409:
            return "duplicate-invitation"
        if exc.status_code == 403:
            return "unauthorized"
    return "other-failure"


def failure_reason(exc: BaseException) -> str:
    """Short human-readable reason stored on an error outcome."""
    if isinstance(exc, OptimisticRollbackError):
        exc = exc.cause
    if isinstance(exc, PipelineError):
        return exc.message
    return str(exc) or type(exc).__name__
