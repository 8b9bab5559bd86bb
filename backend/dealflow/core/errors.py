"""
Workflow error taxonomy.

Every rejected operation carries a stable, action-specific message that the
calling UI shows verbatim, plus optional context for debugging. Route
handlers do not translate these; a single exception handler in ``main``
renders them with their HTTP status.
"""

from typing import Any


class WorkflowError(Exception):
    """Base exception for all workflow errors."""

    status_code = 400
    code = "WORKFLOW_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message

    def to_detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.context}


class Unauthorized(WorkflowError):
    status_code = 401
    code = "UNAUTHORIZED"


class Forbidden(WorkflowError):
    status_code = 403
    code = "FORBIDDEN"


class NotFound(WorkflowError):
    status_code = 404
    code = "NOT_FOUND"


class InvalidTransition(WorkflowError):
    """A stage or release-status move the state machine does not allow."""

    status_code = 409
    code = "INVALID_TRANSITION"

    def __init__(
        self,
        current: str,
        requested: str,
        message: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        self.current = current
        self.requested = requested
        super().__init__(
            message or f"Invalid transition from {current} to {requested}",
            {"current": current, "requested": requested, **(context or {})},
        )


class ValidationFailed(WorkflowError):
    status_code = 400
    code = "VALIDATION_ERROR"


class DependencyFailure(WorkflowError):
    """A best-effort side effect failed. Logged, never returned to callers."""

    status_code = 502
    code = "DEPENDENCY_FAILURE"
