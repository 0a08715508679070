"""Project rows."""

from typing import Optional

from ..exceptions import ProjectNotFoundError
from ..models.project import Project
from .base import BaseRepository, new_id


class ProjectRepository(BaseRepository[Project]):
    model_class = Project
    not_found_error = ProjectNotFoundError

    def create(
        self,
        name: str,
        created_by: str,
        project_id: Optional[str] = None,
        description: Optional[str] = None,
        color: str = "#3b82f6",
        status: str = "active",
    ) -> Project:
        """Stage a new project row. The caller owns the commit."""
        project = Project(
            id=project_id or new_id(),
            name=name,
            description=description,
            color=color,
            status=status,
            created_by=created_by,
        )
        self.db.add(project)
        return project
