"""Delegated grant table: admin-issued manager capabilities per project."""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Query

from ..core.access import Capability
from ..models.grant import ProjectManagerGrant
from ..exceptions import GrantNotFoundError
from .base import BaseRepository


class GrantRepository(BaseRepository[ProjectManagerGrant]):
    model_class = ProjectManagerGrant
    not_found_error = GrantNotFoundError

    def grant_for(self, manager_id: str, project_id: str) -> Optional[ProjectManagerGrant]:
        return (
            self.db.query(ProjectManagerGrant)
            .filter(
                ProjectManagerGrant.manager_id == manager_id,
                ProjectManagerGrant.project_id == project_id,
            )
            .first()
        )

    def query_grants(self, manager_id: Optional[str] = None, project_id: Optional[str] = None) -> Query:
        """Unordered, unscoped grant rows, optionally for one manager and/or project."""
        query = self.db.query(ProjectManagerGrant)
        if manager_id is not None:
            query = query.filter(ProjectManagerGrant.manager_id == manager_id)
        if project_id is not None:
            query = query.filter(ProjectManagerGrant.project_id == project_id)
        return query

    def project_ids_for(self, manager_id: str, capability: Optional[Capability] = None) -> set[str]:
        """Projects granted to *manager_id* with *capability* set.

        Without a capability, any grant carrying at least one flag counts.
        """
        query = self.db.query(ProjectManagerGrant.project_id).filter(
            ProjectManagerGrant.manager_id == manager_id
        )
        if capability is not None:
            query = query.filter(getattr(ProjectManagerGrant, capability.value).is_(True))
        else:
            query = query.filter(
                or_(*(getattr(ProjectManagerGrant, cap.value).is_(True) for cap in Capability))
            )
        return {row[0] for row in query.all()}
