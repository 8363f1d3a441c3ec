"""
ChallengeHub Backend — Custom Exception Hierarchy
===================================================

What:  Defines application-specific exceptions for each failure kind.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services, policies and dependencies; caught by global handlers.
When:  During request processing when recoverable errors occur.

Exception Hierarchy:
    ChallengeHubError (base)
    ├── ValidationError      → 400 Bad Request (client can fix)
    ├── UnauthorizedError    → 401 Unauthorized (missing/invalid token)
    ├── ForbiddenError       → 403 Forbidden (role or ownership check failed)
    ├── NotFoundError        → 404 Not Found
    ├── InvalidStateError    → 409 Conflict (transition not legal from current status)
    ├── ConflictError        → 409 Conflict (lost a concurrent claim/selection)
    └── DatabaseError        → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class ChallengeHubError(Exception):
    """
    Base exception for all ChallengeHub application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ChallengeHubError):
    """
    Raised when client input fails validation.

    When:    Empty title, malformed URL, bad id format, out-of-range score,
             unknown review decision, invalid query parameters.
    HTTP:    400 Bad Request

    Example response:
        {
            "success": false,
            "error": "validation_error",
            "message": "Score must be between 0 and 100",
            "details": {"field": "score"}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UnauthorizedError(ChallengeHubError):
    """Missing, expired or unverifiable bearer token. HTTP 401."""

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(ChallengeHubError):
    """
    Raised when the caller's role or relation to the resource does not
    permit the operation.

    When:    A student reading another student's solution, a company
             selecting on a challenge it does not own, an architect
             reviewing a solution bound to someone else.
    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "You are not allowed to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(ChallengeHubError):
    """
    Raised when a requested resource does not exist.

    When:    Unknown solution or challenge id, or an authenticated user
             without a profile for their role.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class InvalidStateError(ChallengeHubError):
    """
    Raised when a lifecycle transition is not legal from the current status.

    When:    Claiming an already reviewed solution, reviewing an unclaimed
             one, selecting a solution that was never approved, submitting
             to a closed challenge.
    HTTP:    409 Conflict (error code: invalid_state)
    """

    def __init__(
        self,
        message: str = "This action is not allowed in the current state",
        current_status: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if current_status:
            ctx["current_status"] = current_status
        super().__init__(message=message, context=ctx)
        self.current_status = current_status


class ConflictError(ChallengeHubError):
    """
    Raised when a concurrent actor got there first.

    When:    A second architect claims a claimed solution, a student edits
             a solution that is already under review, a company selects
             past the challenge's winner quota.
    HTTP:    409 Conflict (error code: conflict)

    Not retried: repeating the call would fail the same way.
    """

    def __init__(
        self,
        message: str = "The resource was modified by another request",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(ChallengeHubError):
    """
    Raised when database operations fail unexpectedly.

    When:    Connection lost mid-query, constraint violation, deadlock, etc.
    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic.
        Detailed error info is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
