"""Profile endpoints. Visibility and privileged writes are decided by the resolver."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.access import Actor
from ..core.auth import require_auth
from ..database import get_db
from ..schemas.user import AuditEntryResponse, ProfileUpdate, RoleRequest, UserResponse
from ..services import audit_service, identity_service

router = APIRouter(prefix="/api/users", tags=["Users"])
audit_router = APIRouter(prefix="/api/audit", tags=["Audit"])


@router.get("", response_model=List[UserResponse], summary="List visible users")
def list_users(
    include_inactive: bool = Query(False, description="Also return deactivated accounts"),
    actor: Actor = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return identity_service.list_visible_users(db, actor, include_inactive=include_inactive)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: str, actor: Actor = Depends(require_auth), db: Session = Depends(get_db)):
    return identity_service.get_user(db, actor, user_id)


@router.put("/{user_id}", response_model=UserResponse, summary="Update profile fields")
def update_user(
    user_id: str,
    body: ProfileUpdate,
    actor: Actor = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return identity_service.update_profile(
        db, actor, user_id, full_name=body.full_name, timezone=body.timezone
    )


@router.put("/{user_id}/role", response_model=UserResponse, summary="Change a user's global role")
def change_role(
    user_id: str,
    body: RoleRequest,
    actor: Actor = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return identity_service.change_role(db, actor, user_id, body.role.value)


@router.put("/{user_id}/deactivate", response_model=UserResponse, summary="Deactivate an account")
def deactivate(user_id: str, actor: Actor = Depends(require_auth), db: Session = Depends(get_db)):
    return identity_service.deactivate_user(db, actor, user_id)


@audit_router.get("", response_model=List[AuditEntryResponse], summary="Recent access-control changes")
def list_audit_entries(
    resource_type: Optional[str] = Query(None),
    resource_id: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    actor: Actor = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return audit_service.list_entries(
        db, actor, resource_type=resource_type, resource_id=resource_id, user_id=user_id, limit=limit
    )
