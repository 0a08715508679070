"""Per-project time totals.

A report is its own resource: seeing a project's entries does not imply
seeing its aggregates. Admins, owners/managers whose membership has
``can_view_reports``, and managers holding a grant with that flag may read it.
"""

from sqlalchemy.orm import Session

from ..core.access import Action, Actor, ReportRecord
from ..models.user import Profile
from ..repositories import ProjectRepository, TimeEntryRepository
from ..schemas.project import MemberTotal, ProjectSummary
from .access_guard import AccessGuard


def project_summary(db: Session, actor: Actor, project_id: str) -> ProjectSummary:
    project = ProjectRepository(db).get_by_id(project_id)
    AccessGuard(db).check(actor, Action.READ, ReportRecord(project_id))

    totals = TimeEntryRepository(db).totals_by_user(project_id)
    user_ids = [user_id for user_id, _, _ in totals]
    names = dict(
        db.query(Profile.user_id, Profile.full_name).filter(Profile.user_id.in_(user_ids)).all()
    ) if user_ids else {}

    members = [
        MemberTotal(user_id=user_id, full_name=names.get(user_id), total_minutes=minutes, entry_count=count)
        for user_id, minutes, count in totals
    ]
    return ProjectSummary(
        project_id=project.id,
        project_name=project.name,
        total_minutes=sum(m.total_minutes for m in members),
        entry_count=sum(m.entry_count for m in members),
        members=members,
    )
