"""Delegated grant lifecycle.

Admins issue grants to managers, one per (manager, project) pair. Issuing
again for an existing pair replaces its capability flags. Revoking a grant
that does not exist is a no-op.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.access import Action, Actor, GlobalRole, GrantRecord, ResourceType
from ..exceptions import ConflictError, InvalidGranteeError
from ..models import ProjectManagerGrant
from ..repositories import GrantRepository, IdentityRepository, ProjectRepository
from ..repositories.base import new_id
from ..schemas.grant import GrantCapabilities
from . import audit_service
from .access_guard import AccessGuard

logger = logging.getLogger(__name__)


def list_grants(
    db: Session,
    actor: Actor,
    manager_id: Optional[str] = None,
    project_id: Optional[str] = None,
) -> list[ProjectManagerGrant]:
    """Grants the actor may see: all of them for an admin, a manager's own otherwise."""
    query = GrantRepository(db).query_grants(manager_id=manager_id, project_id=project_id)
    query = AccessGuard(db).scoped_list(actor, ResourceType.GRANT, query)
    return query.order_by(ProjectManagerGrant.granted_at, ProjectManagerGrant.id).all()


def grants_for(db: Session, actor: Actor, manager_id: str) -> list[ProjectManagerGrant]:
    return list_grants(db, actor, manager_id=manager_id)


def grants_on(db: Session, actor: Actor, project_id: str) -> list[ProjectManagerGrant]:
    ProjectRepository(db).get_by_id(project_id)
    return list_grants(db, actor, project_id=project_id)


def get_grant(db: Session, actor: Actor, grant_id: str) -> ProjectManagerGrant:
    grant = GrantRepository(db).get_by_id(grant_id)
    return AccessGuard(db).guard(actor, Action.READ, GrantRecord.from_row(grant), lambda: grant)


def issue(
    db: Session,
    actor: Actor,
    manager_id: str,
    project_id: str,
    capabilities: GrantCapabilities,
) -> ProjectManagerGrant:
    """Create or replace the grant for (manager_id, project_id).

    Raises:
        Denied: actor is not an admin.
        InvalidGranteeError: grantee is unknown or their global role is not manager.
        ProjectNotFoundError: unknown project.
        ConflictError: the pair kept colliding with concurrent writes.
    """
    AccessGuard(db).check(actor, Action.WRITE, GrantRecord(manager_id, project_id))

    role = IdentityRepository(db).get_role(manager_id)
    if role != GlobalRole.MANAGER:
        raise InvalidGranteeError(manager_id, role.value if role else None)
    ProjectRepository(db).get_by_id(project_id)

    repo = GrantRepository(db)
    flags = capabilities.model_dump()
    grant, is_new = _upsert(db, repo, actor, manager_id, project_id, flags)
    try:
        db.commit()
    except IntegrityError as e:
        # A concurrent issue inserted the same pair first; update that row instead.
        db.rollback()
        grant, is_new = _upsert(db, repo, actor, manager_id, project_id, flags)
        if is_new:
            db.rollback()
            raise ConflictError(
                "Grant was modified concurrently",
                details={"manager_id": manager_id, "project_id": project_id},
            ) from e
        db.commit()
    db.refresh(grant)

    logger.info(
        "Grant issued",
        extra={"actor_id": actor.user_id, "manager_id": manager_id, "project_id": project_id, "replaced": not is_new},
    )
    audit_service.log(
        db, user_id=actor.user_id, action="grant_issue",
        resource_type=ResourceType.GRANT.value, resource_id=grant.id,
        details={"manager_id": manager_id, "project_id": project_id, **flags},
    )
    return grant


def _upsert(
    db: Session,
    repo: GrantRepository,
    actor: Actor,
    manager_id: str,
    project_id: str,
    flags: dict,
) -> tuple[ProjectManagerGrant, bool]:
    """Stage the grant row with *flags*; returns (row, created)."""
    grant = repo.grant_for(manager_id, project_id)
    is_new = grant is None
    if is_new:
        grant = ProjectManagerGrant(id=new_id(), manager_id=manager_id, project_id=project_id)
        db.add(grant)
    for capability, enabled in flags.items():
        setattr(grant, capability, enabled)
    grant.granted_by = actor.user_id
    return grant, is_new


def revoke(db: Session, actor: Actor, grant_id: str) -> bool:
    """Delete a grant. Returns False when there was nothing to delete."""
    grant = GrantRepository(db).get_by_id_optional(grant_id)
    record = GrantRecord.from_row(grant) if grant is not None else GrantRecord()
    AccessGuard(db).check(actor, Action.DELETE, record)

    if grant is None:
        return False

    details = {"manager_id": grant.manager_id, "project_id": grant.project_id}
    db.delete(grant)
    db.commit()

    audit_service.log(
        db, user_id=actor.user_id, action="grant_revoke",
        resource_type=ResourceType.GRANT.value, resource_id=grant_id, details=details,
    )
    return True
