"""Membership registry: (project, user) -> project role + capability flags."""

from typing import Iterable, Optional

from sqlalchemy.orm import Query

from ..core.access import ProjectRole
from ..exceptions import MembershipNotFoundError
from ..models.project import ProjectMember
from .base import BaseRepository, new_id


class MembershipRepository(BaseRepository[ProjectMember]):
    model_class = ProjectMember
    not_found_error = MembershipNotFoundError

    def membership_of(self, project_id: str, user_id: str) -> Optional[ProjectMember]:
        return (
            self.db.query(ProjectMember)
            .filter(ProjectMember.project_id == project_id, ProjectMember.user_id == user_id)
            .first()
        )

    def query_members_of(self, project_id: str) -> Query:
        """Unordered, unscoped membership rows of one project."""
        return self.db.query(ProjectMember).filter(ProjectMember.project_id == project_id)

    def project_ids_for(
        self, user_id: str, roles: Optional[Iterable[ProjectRole]] = None
    ) -> set[str]:
        """Projects where *user_id* holds a membership, optionally limited to *roles*."""
        query = self.db.query(ProjectMember.project_id).filter(ProjectMember.user_id == user_id)
        if roles is not None:
            query = query.filter(ProjectMember.role.in_([r.value for r in roles]))
        return {row[0] for row in query.all()}

    def count_owners(self, project_id: str) -> int:
        return (
            self.db.query(ProjectMember)
            .filter(
                ProjectMember.project_id == project_id,
                ProjectMember.role == ProjectRole.OWNER.value,
            )
            .count()
        )

    def create(
        self,
        project_id: str,
        user_id: str,
        role: ProjectRole,
        can_edit_project: bool = False,
        can_view_reports: bool = True,
        added_by: Optional[str] = None,
    ) -> ProjectMember:
        """Stage a new membership row. The caller owns the commit."""
        membership = ProjectMember(
            id=new_id(),
            project_id=project_id,
            user_id=user_id,
            role=role.value,
            can_edit_project=can_edit_project,
            can_view_reports=can_view_reports,
            added_by=added_by,
        )
        self.db.add(membership)
        return membership
