"""Project lifecycle.

Creating a project also creates the creator's owner membership in the same
transaction, so a project is never left without an owner.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.access import Action, Actor, ProjectRecord, ProjectRole, ResourceType
from ..exceptions import DatabaseError
from ..models import Project
from ..repositories import MembershipRepository, ProjectRepository
from ..repositories.base import new_id
from ..schemas.project import ProjectCreate, ProjectUpdate
from . import audit_service
from .access_guard import AccessGuard

logger = logging.getLogger(__name__)


class ProjectService:
    def __init__(self, db: Session):
        self.db = db
        self.project_repo = ProjectRepository(db)
        self.membership_repo = MembershipRepository(db)
        self.access = AccessGuard(db)

    def create_project(self, actor: Actor, data: ProjectCreate) -> Project:
        project_id = new_id()
        self.access.check(actor, Action.WRITE, ProjectRecord(project_id, created_by=actor.user_id))

        try:
            project = self.project_repo.create(
                name=data.name,
                created_by=actor.user_id,
                project_id=project_id,
                description=data.description,
                color=data.color,
                status=data.status,
            )
            self.db.flush()
            self.membership_repo.create(
                project_id=project.id,
                user_id=actor.user_id,
                role=ProjectRole.OWNER,
                can_edit_project=True,
                can_view_reports=True,
                added_by=actor.user_id,
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError("Failed to create project", original_error=e) from e

        self.db.refresh(project)
        logger.info("Project created", extra={"actor_id": actor.user_id, "project_id": project.id})
        audit_service.log(
            self.db, user_id=actor.user_id, action="project_create",
            resource_type=ResourceType.PROJECT.value, resource_id=project.id,
            details={"name": project.name},
        )
        return project

    def get_project(self, actor: Actor, project_id: str) -> Project:
        project = self.project_repo.get_by_id(project_id)
        return self.access.guard(actor, Action.READ, ProjectRecord.from_row(project), lambda: project)

    def list_projects(self, actor: Actor, status: Optional[str] = None) -> list[Project]:
        query = self.db.query(Project)
        if status is not None:
            query = query.filter(Project.status == status)
        query = self.access.scoped_list(actor, ResourceType.PROJECT, query)
        return query.order_by(Project.name, Project.id).all()

    def update_project(self, actor: Actor, project_id: str, data: ProjectUpdate) -> Project:
        project = self.project_repo.get_by_id(project_id)
        self.access.check(actor, Action.WRITE, ProjectRecord.from_row(project))

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field != "description":
                continue
            setattr(project, field, value)
        self.db.commit()
        self.db.refresh(project)
        return project

    def delete_project(self, actor: Actor, project_id: str) -> None:
        """Delete a project with its memberships, grants and time entries."""
        project = self.project_repo.get_by_id(project_id)
        self.access.check(actor, Action.DELETE, ProjectRecord.from_row(project))

        name = project.name
        self.db.delete(project)
        self.db.commit()

        logger.info("Project deleted", extra={"actor_id": actor.user_id, "project_id": project_id})
        audit_service.log(
            self.db, user_id=actor.user_id, action="project_delete",
            resource_type=ResourceType.PROJECT.value, resource_id=project_id,
            details={"name": name},
        )
