"""Membership registry: who belongs to a project and in what role.

Every project keeps at least one owner membership: removing or demoting the
last owner is refused with ConflictError.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.access import Action, Actor, MembershipRecord, ProjectRole, ResourceType
from ..exceptions import ConflictError, ValidationError
from ..models import ProjectMember
from ..repositories import IdentityRepository, MembershipRepository, ProjectRepository
from . import audit_service
from .access_guard import AccessGuard

logger = logging.getLogger(__name__)


class MembershipService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = MembershipRepository(db)
        self.project_repo = ProjectRepository(db)
        self.identity_repo = IdentityRepository(db)
        self.access = AccessGuard(db)

    def membership_of(self, actor: Actor, project_id: str, user_id: str) -> Optional[ProjectMember]:
        self.access.check(actor, Action.READ, MembershipRecord(project_id, user_id))
        return self.repo.membership_of(project_id, user_id)

    def get_membership(self, actor: Actor, membership_id: str) -> ProjectMember:
        membership = self.repo.get_by_id(membership_id)
        return self.access.guard(
            actor, Action.READ, MembershipRecord.from_row(membership), lambda: membership
        )

    def members_of(self, actor: Actor, project_id: str) -> list[ProjectMember]:
        """Memberships of a project that the actor can see."""
        self.project_repo.get_by_id(project_id)
        query = self.access.scoped_list(actor, ResourceType.MEMBERSHIP, self.repo.query_members_of(project_id))
        return query.order_by(ProjectMember.added_at, ProjectMember.id).all()

    def add(
        self,
        actor: Actor,
        project_id: str,
        user_id: str,
        role: ProjectRole = ProjectRole.MEMBER,
        can_edit_project: bool = False,
        can_view_reports: bool = True,
    ) -> ProjectMember:
        """Add *user_id* to a project.

        Raises:
            ProjectNotFoundError / UserNotFoundError: unknown project or user.
            Denied: actor is neither admin nor an owner/manager of the project.
            ValidationError: the target account is deactivated.
            ConflictError: the user is already a member.
        """
        role = _parse_role(role)
        self.project_repo.get_by_id(project_id)
        self.access.check(actor, Action.WRITE, MembershipRecord(project_id, user_id))

        self.identity_repo.get_by_id(user_id)
        if not self.identity_repo.is_active(user_id):
            raise ValidationError("Cannot add a deactivated account to a project", field="user_id")
        if self.repo.membership_of(project_id, user_id) is not None:
            raise ConflictError(
                "User is already a member of this project",
                details={"project_id": project_id, "user_id": user_id},
            )

        membership = self.repo.create(
            project_id=project_id,
            user_id=user_id,
            role=role,
            can_edit_project=can_edit_project,
            can_view_reports=can_view_reports,
            added_by=actor.user_id,
        )
        try:
            self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent add of the same pair.
            self.db.rollback()
            raise ConflictError(
                "User is already a member of this project",
                details={"project_id": project_id, "user_id": user_id},
            ) from e
        self.db.refresh(membership)

        audit_service.log(
            self.db, user_id=actor.user_id, action="member_add",
            resource_type=ResourceType.MEMBERSHIP.value, resource_id=membership.id,
            details={"project_id": project_id, "user_id": user_id, "role": role.value},
        )
        return membership

    def set_role(
        self,
        actor: Actor,
        membership_id: str,
        role: ProjectRole,
        can_edit_project: Optional[bool] = None,
        can_view_reports: Optional[bool] = None,
    ) -> ProjectMember:
        role = _parse_role(role)
        membership = self.repo.get_by_id(membership_id)
        self.access.check(actor, Action.WRITE, MembershipRecord.from_row(membership))

        previous = membership.role
        if previous == ProjectRole.OWNER.value and role != ProjectRole.OWNER:
            self._ensure_other_owner(membership)

        membership.role = role.value
        if can_edit_project is not None:
            membership.can_edit_project = can_edit_project
        if can_view_reports is not None:
            membership.can_view_reports = can_view_reports
        self.db.commit()
        self.db.refresh(membership)

        audit_service.log(
            self.db, user_id=actor.user_id, action="member_role_change",
            resource_type=ResourceType.MEMBERSHIP.value, resource_id=membership.id,
            details={"project_id": membership.project_id, "from": previous, "to": role.value},
        )
        return membership

    def remove(self, actor: Actor, membership_id: str) -> None:
        membership = self.repo.get_by_id(membership_id)
        self.access.check(actor, Action.DELETE, MembershipRecord.from_row(membership))

        if membership.role == ProjectRole.OWNER.value:
            self._ensure_other_owner(membership)

        details = {"project_id": membership.project_id, "user_id": membership.user_id}
        self.db.delete(membership)
        self.db.commit()

        audit_service.log(
            self.db, user_id=actor.user_id, action="member_remove",
            resource_type=ResourceType.MEMBERSHIP.value, resource_id=membership_id,
            details=details,
        )

    def _ensure_other_owner(self, membership: ProjectMember) -> None:
        if self.repo.count_owners(membership.project_id) <= 1:
            raise ConflictError(
                "A project must keep at least one owner",
                details={"project_id": membership.project_id},
            )


def _parse_role(role) -> ProjectRole:
    try:
        return ProjectRole(role)
    except ValueError:
        valid = ", ".join(r.value for r in ProjectRole)
        raise ValidationError(f"Invalid project role: {role}. Must be one of: {valid}", field="role") from None
