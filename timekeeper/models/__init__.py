"""Database models."""

from .user import Profile, AuditLog
from .project import Project, ProjectMember
from .grant import ProjectManagerGrant
from .time_entry import TimeEntry

__all__ = [
    "Profile", "AuditLog",
    "Project", "ProjectMember",
    "ProjectManagerGrant",
    "TimeEntry",
]
