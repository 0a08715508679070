"""Project, membership and report endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..core.access import Actor
from ..core.auth import require_auth
from ..database import get_db
from ..schemas.project import (
    MembershipCreate,
    MembershipResponse,
    MembershipUpdate,
    ProjectCreate,
    ProjectResponse,
    ProjectSummary,
    ProjectUpdate,
)
from ..services import MembershipService, ProjectService, report_service

router = APIRouter(prefix="/api/projects", tags=["Projects"])
membership_router = APIRouter(prefix="/api/memberships", tags=["Projects"])


@router.post("", response_model=ProjectResponse, status_code=201)
def create_project(body: ProjectCreate, actor: Actor = Depends(require_auth), db: Session = Depends(get_db)):
    return ProjectService(db).create_project(actor, body)


@router.get("", response_model=List[ProjectResponse], summary="List visible projects")
def list_projects(
    status: Optional[str] = Query(None),
    actor: Actor = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return ProjectService(db).list_projects(actor, status=status)


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(project_id: str, actor: Actor = Depends(require_auth), db: Session = Depends(get_db)):
    return ProjectService(db).get_project(actor, project_id)


@router.put("/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: str,
    body: ProjectUpdate,
    actor: Actor = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return ProjectService(db).update_project(actor, project_id, body)


@router.delete("/{project_id}", status_code=204)
def delete_project(project_id: str, actor: Actor = Depends(require_auth), db: Session = Depends(get_db)):
    ProjectService(db).delete_project(actor, project_id)
    return Response(status_code=204)


@router.get("/{project_id}/members", response_model=List[MembershipResponse])
def list_members(project_id: str, actor: Actor = Depends(require_auth), db: Session = Depends(get_db)):
    return MembershipService(db).members_of(actor, project_id)


@router.post("/{project_id}/members", response_model=MembershipResponse, status_code=201)
def add_member(
    project_id: str,
    body: MembershipCreate,
    actor: Actor = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return MembershipService(db).add(
        actor,
        project_id,
        body.user_id,
        role=body.role,
        can_edit_project=body.can_edit_project,
        can_view_reports=body.can_view_reports,
    )


@router.get("/{project_id}/report", response_model=ProjectSummary, summary="Time totals per member")
def project_report(project_id: str, actor: Actor = Depends(require_auth), db: Session = Depends(get_db)):
    return report_service.project_summary(db, actor, project_id)


@membership_router.get("/{membership_id}", response_model=MembershipResponse)
def get_membership(membership_id: str, actor: Actor = Depends(require_auth), db: Session = Depends(get_db)):
    return MembershipService(db).get_membership(actor, membership_id)


@membership_router.put("/{membership_id}", response_model=MembershipResponse)
def update_membership(
    membership_id: str,
    body: MembershipUpdate,
    actor: Actor = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return MembershipService(db).set_role(
        actor,
        membership_id,
        body.role,
        can_edit_project=body.can_edit_project,
        can_view_reports=body.can_view_reports,
    )


@membership_router.delete("/{membership_id}", status_code=204)
def remove_membership(membership_id: str, actor: Actor = Depends(require_auth), db: Session = Depends(get_db)):
    MembershipService(db).remove(actor, membership_id)
    return Response(status_code=204)
