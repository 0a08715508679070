"""Exceptions raised by services and mapped to JSON error bodies by the middleware."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Lookup errors
    PROJECT_NOT_FOUND = "PROJECT_NOT_FOUND"
    MEMBERSHIP_NOT_FOUND = "MEMBERSHIP_NOT_FOUND"
    TIME_ENTRY_NOT_FOUND = "TIME_ENTRY_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    GRANT_NOT_FOUND = "GRANT_NOT_FOUND"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_GRANTEE = "INVALID_GRANTEE"

    # Auth
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    RESOLVER_ERROR = "RESOLVER_ERROR"

    # Concurrency / uniqueness
    CONFLICT = "CONFLICT"

    # Database errors
    DATABASE_ERROR = "DATABASE_ERROR"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class TimekeeperException(Exception):
    """
    Base exception for all Timekeeper errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class NotFoundError(TimekeeperException):
    """Base class for missing rows."""

    error_code = ErrorCode.INTERNAL_ERROR
    label = "Resource"

    def __init__(self, entity_id: str):
        super().__init__(
            f"{self.label} not found: {entity_id}",
            self.error_code,
            status_code=404,
            details={"id": entity_id}
        )


class ProjectNotFoundError(NotFoundError):
    error_code = ErrorCode.PROJECT_NOT_FOUND
    label = "Project"


class MembershipNotFoundError(NotFoundError):
    error_code = ErrorCode.MEMBERSHIP_NOT_FOUND
    label = "Membership"


class TimeEntryNotFoundError(NotFoundError):
    error_code = ErrorCode.TIME_ENTRY_NOT_FOUND
    label = "Time entry"


class UserNotFoundError(NotFoundError):
    error_code = ErrorCode.USER_NOT_FOUND
    label = "User"


class GrantNotFoundError(NotFoundError):
    error_code = ErrorCode.GRANT_NOT_FOUND
    label = "Grant"


class ValidationError(TimekeeperException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class AuthenticationError(TimekeeperException):
    """Request lacks valid authentication credentials."""

    def __init__(self, message: str = "Invalid or missing authentication token"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class Denied(TimekeeperException):
    """The resolver refused the operation (or could not decide and failed closed)."""

    def __init__(
        self,
        actor_id: Optional[str],
        action: str,
        resource_type: str,
        message: str = "You do not have permission to perform this action",
    ):
        super().__init__(
            message,
            ErrorCode.FORBIDDEN,
            status_code=403,
            details={"actor_id": actor_id, "action": action, "resource_type": resource_type}
        )
        self.actor_id = actor_id
        self.action = action
        self.resource_type = resource_type


class ConflictError(TimekeeperException):
    """Write conflicts with existing state (duplicate row, last owner, ...)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            ErrorCode.CONFLICT,
            status_code=409,
            details=details
        )


class InvalidGranteeError(TimekeeperException):
    """Grant targets an actor whose global role is not manager."""

    def __init__(self, manager_id: str, role: Optional[str]):
        super().__init__(
            f"Grants can only be issued to managers (user {manager_id} has role {role})",
            ErrorCode.INVALID_GRANTEE,
            status_code=422,
            details={"manager_id": manager_id, "role": role}
        )


class ResolverError(TimekeeperException):
    """A store consulted by the resolver failed.

    Never reaches a client directly: the enforcement adapter logs it and
    raises ``Denied`` instead.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        details = {}
        if original_error is not None:
            details["original_error"] = f"{type(original_error).__name__}: {original_error}"
        super().__init__(
            message,
            ErrorCode.RESOLVER_ERROR,
            status_code=500,
            details=details
        )
        self.original_error = original_error


class DatabaseError(TimekeeperException):
    """Database operation failed."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message,
            ErrorCode.DATABASE_ERROR,
            status_code=500,
            details=details
        )
