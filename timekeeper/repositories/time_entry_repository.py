"""Time entry rows plus the owner lookups used for profile visibility."""

from typing import Iterable

from sqlalchemy import func

from ..exceptions import TimeEntryNotFoundError
from ..models.time_entry import TimeEntry
from .base import BaseRepository


class TimeEntryRepository(BaseRepository[TimeEntry]):
    model_class = TimeEntry
    not_found_error = TimeEntryNotFoundError

    def owner_ids_in(self, project_ids: Iterable[str]) -> set[str]:
        """Actors owning at least one entry in any of *project_ids*."""
        ids = sorted(set(project_ids))
        if not ids:
            return set()
        rows = (
            self.db.query(TimeEntry.user_id)
            .filter(TimeEntry.project_id.in_(ids))
            .distinct()
            .all()
        )
        return {row[0] for row in rows}

    def has_entry_in(self, user_id: str, project_ids: Iterable[str]) -> bool:
        ids = sorted(set(project_ids))
        if not ids:
            return False
        return (
            self.db.query(TimeEntry.id)
            .filter(TimeEntry.user_id == user_id, TimeEntry.project_id.in_(ids))
            .first()
            is not None
        )

    def totals_by_user(self, project_id: str) -> list[tuple[str, int, int]]:
        """(user_id, total_minutes, entry_count) for one project."""
        rows = (
            self.db.query(
                TimeEntry.user_id,
                func.coalesce(func.sum(TimeEntry.duration_minutes), 0),
                func.count(TimeEntry.id),
            )
            .filter(TimeEntry.project_id == project_id)
            .group_by(TimeEntry.user_id)
            .order_by(TimeEntry.user_id)
            .all()
        )
        return [(user_id, int(total), int(count)) for user_id, total, count in rows]
