"""Delegated manager grant schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class GrantCapabilities(BaseModel):
    """Capability flags. Defaults match a read-only delegation."""
    can_view_entries: bool = True
    can_edit_entries: bool = False
    can_view_reports: bool = True
    can_edit_project: bool = False


class GrantCreate(GrantCapabilities):
    manager_id: str
    project_id: str


class GrantResponse(GrantCapabilities):
    id: str
    manager_id: str
    project_id: str
    granted_by: Optional[str] = None
    granted_at: Optional[datetime] = None

    class Config:
        from_attributes = True
