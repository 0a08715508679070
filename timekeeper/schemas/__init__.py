"""Pydantic schemas for API validation."""

from .project import (
    ProjectCreate,
    ProjectUpdate,
    ProjectResponse,
    MembershipCreate,
    MembershipUpdate,
    MembershipResponse,
    ProjectSummary,
)
from .grant import GrantCapabilities, GrantCreate, GrantResponse
from .time_entry import TimeEntryCreate, TimeEntryUpdate, TimeEntryResponse, ReassignRequest
from .user import (
    RegisterRequest,
    LoginRequest,
    LoginResponse,
    RoleRequest,
    ProfileUpdate,
    UserResponse,
    AuditEntryResponse,
)

__all__ = [
    "ProjectCreate",
    "ProjectUpdate",
    "ProjectResponse",
    "MembershipCreate",
    "MembershipUpdate",
    "MembershipResponse",
    "ProjectSummary",
    "GrantCapabilities",
    "GrantCreate",
    "GrantResponse",
    "TimeEntryCreate",
    "TimeEntryUpdate",
    "TimeEntryResponse",
    "ReassignRequest",
    "RegisterRequest",
    "LoginRequest",
    "LoginResponse",
    "RoleRequest",
    "ProfileUpdate",
    "UserResponse",
    "AuditEntryResponse",
]
