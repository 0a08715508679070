"""Delegated grant endpoints (issue and revoke are admin only)."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..core.access import Actor
from ..core.auth import require_auth
from ..database import get_db
from ..schemas.grant import GrantCapabilities, GrantCreate, GrantResponse
from ..services import grant_service

router = APIRouter(prefix="/api/grants", tags=["Grants"])


@router.get("", response_model=List[GrantResponse])
def list_grants(
    manager_id: Optional[str] = Query(None),
    project_id: Optional[str] = Query(None),
    actor: Actor = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return grant_service.list_grants(db, actor, manager_id=manager_id, project_id=project_id)


@router.get("/{grant_id}", response_model=GrantResponse)
def get_grant(grant_id: str, actor: Actor = Depends(require_auth), db: Session = Depends(get_db)):
    return grant_service.get_grant(db, actor, grant_id)


@router.post("", response_model=GrantResponse, status_code=201, summary="Issue or replace a grant")
def issue_grant(body: GrantCreate, actor: Actor = Depends(require_auth), db: Session = Depends(get_db)):
    capabilities = GrantCapabilities(**body.model_dump(include=set(GrantCapabilities.model_fields)))
    return grant_service.issue(db, actor, body.manager_id, body.project_id, capabilities)


@router.delete("/{grant_id}", status_code=204, summary="Revoke a grant (no-op if absent)")
def revoke_grant(grant_id: str, actor: Actor = Depends(require_auth), db: Session = Depends(get_db)):
    grant_service.revoke(db, actor, grant_id)
    return Response(status_code=204)
