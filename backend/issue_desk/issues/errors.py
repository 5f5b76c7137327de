from __future__ import annotations


class IssueError(Exception):
    """Base class for workflow failures. `detail` is shown to the caller as-is."""

    code = "ISSUE_ERROR"
    http_status = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(IssueError):
    code = "VALIDATION_ERROR"
    http_status = 400


class NotFoundError(IssueError):
    code = "NOT_FOUND"
    http_status = 404


class ForbiddenError(IssueError):
    code = "FORBIDDEN"
    http_status = 403


class InvalidStateError(IssueError):
    code = "INVALID_STATE"
    http_status = 409


class OrderNotFulfilledError(InvalidStateError):
    # intake-only: order not shipped yet, or outside the reporting window
    http_status = 400


class ConflictError(IssueError):
    code = "CONFLICT"
    http_status = 409


class StaleStateError(IssueError):
    """The issue changed between the precondition read and the guarded write."""

    code = "STALE_STATE"
    http_status = 409


DEPENDENCY_FAILURE = "DEPENDENCY_FAILURE"
