"""Time entry service.

Entries are owned by one actor. ``duration_minutes`` is derived from the
start and end times whenever both are set, and a running entry (no end
time) has no duration.

Changing ``user_id`` is a reassignment: it touches a privileged field, so
the owner alone cannot do it; an admin, a project owner/manager or a grant
with ``can_edit_entries`` can.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..core.access import Action, Actor, ResourceType, TimeEntryRecord
from ..exceptions import ValidationError
from ..models import TimeEntry
from ..repositories import IdentityRepository, ProjectRepository, TimeEntryRepository
from ..repositories.base import new_id
from ..schemas.time_entry import TimeEntryCreate, TimeEntryUpdate
from .access_guard import AccessGuard

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 500


def compute_duration(start_time: datetime, end_time: Optional[datetime]) -> Optional[int]:
    """Whole minutes between start and end, or None for a running entry.

    Raises ValidationError unless end is after start.
    """
    if end_time is None:
        return None
    if end_time <= start_time:
        raise ValidationError("end_time must be after start_time", field="end_time")
    return max(1, int((end_time - start_time).total_seconds() // 60))


class TimeEntryService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = TimeEntryRepository(db)
        self.project_repo = ProjectRepository(db)
        self.identity_repo = IdentityRepository(db)
        self.access = AccessGuard(db)

    def create_entry(self, actor: Actor, data: TimeEntryCreate) -> TimeEntry:
        owner_id = data.user_id or actor.user_id
        self.project_repo.get_by_id(data.project_id)

        # Logging time for someone else is a write to the owner field.
        field = "user_id" if owner_id != actor.user_id else None
        self.access.check(actor, Action.WRITE, TimeEntryRecord(owner_id, data.project_id, field))
        if field is not None:
            self.identity_repo.get_by_id(owner_id)

        entry = TimeEntry(
            id=new_id(),
            user_id=owner_id,
            project_id=data.project_id,
            description=data.description,
            start_time=data.start_time,
            end_time=data.end_time,
            duration_minutes=compute_duration(data.start_time, data.end_time),
            is_billable=data.is_billable,
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        logger.debug("Time entry created", extra={"actor_id": actor.user_id, "entry_id": entry.id})
        return entry

    def get_entry(self, actor: Actor, entry_id: str) -> TimeEntry:
        entry = self.repo.get_by_id(entry_id)
        return self.access.guard(actor, Action.READ, TimeEntryRecord.from_row(entry), lambda: entry)

    def list_entries(
        self,
        actor: Actor,
        project_id: Optional[str] = None,
        user_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        skip: int = 0,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> list[TimeEntry]:
        """Visible entries, newest first, optionally narrowed by project, owner and start window."""
        query = self.db.query(TimeEntry)
        if project_id is not None:
            query = query.filter(TimeEntry.project_id == project_id)
        if user_id is not None:
            query = query.filter(TimeEntry.user_id == user_id)
        if start is not None:
            query = query.filter(TimeEntry.start_time >= start)
        if end is not None:
            query = query.filter(TimeEntry.start_time < end)

        query = self.access.scoped_list(actor, ResourceType.TIME_ENTRY, query)
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        return (
            query.order_by(TimeEntry.start_time.desc(), TimeEntry.id)
            .offset(max(0, skip))
            .limit(limit)
            .all()
        )

    def update_entry(self, actor: Actor, entry_id: str, data: TimeEntryUpdate) -> TimeEntry:
        entry = self.repo.get_by_id(entry_id)
        self.access.check(actor, Action.WRITE, TimeEntryRecord.from_row(entry))

        changes = data.model_dump(exclude_unset=True)
        new_project = changes.get("project_id")
        if new_project is not None and new_project != entry.project_id:
            # Moving an entry also needs write access in the destination project.
            self.project_repo.get_by_id(new_project)
            self.access.check(actor, Action.WRITE, TimeEntryRecord(entry.user_id, new_project))

        for field, value in changes.items():
            if value is None and field in ("project_id", "start_time", "is_billable"):
                continue
            setattr(entry, field, value)
        entry.duration_minutes = compute_duration(entry.start_time, entry.end_time)

        self.db.commit()
        self.db.refresh(entry)
        return entry

    def reassign_entry(self, actor: Actor, entry_id: str, new_owner_id: str) -> TimeEntry:
        entry = self.repo.get_by_id(entry_id)
        self.access.check(actor, Action.WRITE, TimeEntryRecord.from_row(entry, field="user_id"))
        self.identity_repo.get_by_id(new_owner_id)

        previous = entry.user_id
        entry.user_id = new_owner_id
        self.db.commit()
        self.db.refresh(entry)

        logger.info(
            "Time entry reassigned",
            extra={"actor_id": actor.user_id, "entry_id": entry_id, "from_user": previous, "to_user": new_owner_id},
        )
        return entry

    def delete_entry(self, actor: Actor, entry_id: str) -> None:
        entry = self.repo.get_by_id(entry_id)
        self.access.check(actor, Action.DELETE, TimeEntryRecord.from_row(entry))
        self.db.delete(entry)
        self.db.commit()
