"""Business logic services."""

from .access_guard import AccessGuard
from .membership_service import MembershipService
from .project_service import ProjectService
from .time_entry_service import TimeEntryService

__all__ = ["AccessGuard", "MembershipService", "ProjectService", "TimeEntryService"]
