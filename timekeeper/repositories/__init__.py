"""Data access repositories."""

from .base import BaseRepository
from .identity_repository import IdentityRepository
from .membership_repository import MembershipRepository
from .grant_repository import GrantRepository
from .project_repository import ProjectRepository
from .time_entry_repository import TimeEntryRepository

__all__ = [
    "BaseRepository",
    "IdentityRepository",
    "MembershipRepository",
    "GrantRepository",
    "ProjectRepository",
    "TimeEntryRepository",
]
