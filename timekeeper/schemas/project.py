"""Project and membership schemas."""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..core.access import ProjectRole

_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
PROJECT_STATUSES = ("active", "on_hold", "completed", "cancelled")


def _check_color(v: Optional[str]) -> Optional[str]:
    if v is not None and not _COLOR_RE.match(v):
        raise ValueError("Color must be a hex value like #3b82f6")
    return v


def _check_status(v: Optional[str]) -> Optional[str]:
    if v is not None and v not in PROJECT_STATUSES:
        raise ValueError(f"Status must be one of: {', '.join(PROJECT_STATUSES)}")
    return v


class ProjectCreate(BaseModel):
    name: str = Field(..., max_length=255)
    description: Optional[str] = None
    color: str = "#3b82f6"
    status: str = "active"

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Project name cannot be empty")
        return v

    @field_validator("color")
    @classmethod
    def validate_color(cls, v):
        return _check_color(v)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)


class ProjectUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    color: Optional[str] = None
    status: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            v = v.strip()
            if not v:
                raise ValueError("Project name cannot be empty")
        return v

    @field_validator("color")
    @classmethod
    def validate_color(cls, v):
        return _check_color(v)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)


class ProjectResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    color: str
    status: str
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MembershipCreate(BaseModel):
    user_id: str
    role: ProjectRole = ProjectRole.MEMBER
    can_edit_project: bool = False
    can_view_reports: bool = True


class MembershipUpdate(BaseModel):
    role: ProjectRole
    can_edit_project: Optional[bool] = None
    can_view_reports: Optional[bool] = None


class MembershipResponse(BaseModel):
    id: str
    project_id: str
    user_id: str
    role: str
    can_edit_project: bool
    can_view_reports: bool
    added_by: Optional[str] = None
    added_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MemberTotal(BaseModel):
    """One row of a project report."""
    user_id: str
    full_name: Optional[str] = None
    total_minutes: int
    entry_count: int


class ProjectSummary(BaseModel):
    project_id: str
    project_name: str
    total_minutes: int
    entry_count: int
    members: list[MemberTotal]
