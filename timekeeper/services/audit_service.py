"""Audit trail for access-control changes.

Every mutation of roles, activation, memberships, grants and projects is
recorded after it commits. Writing an entry never breaks the operation that
triggered it; failures are logged and rolled back.

    audit_service.log(db, user_id=actor.user_id, action="grant_issue",
                      resource_type="grant", resource_id=grant.id,
                      details={"manager_id": ..., "project_id": ...})
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import sqlalchemy.exc
from sqlalchemy.orm import Session

from ..core.access import Action, Actor, AuditLogRecord
from ..models.user import AuditLog
from .access_guard import AccessGuard

logger = logging.getLogger(__name__)


def log(
    db: Session,
    user_id: Optional[str],
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    details: Optional[dict] = None,
) -> None:
    try:
        entry = AuditLog(
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=json.dumps(details, default=str) if details else None,
        )
        db.add(entry)
        db.commit()
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.warning("Failed to write audit log: %s", e, extra={"audit_action": action})
        db.rollback()


def list_entries(
    db: Session,
    actor: Actor,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    user_id: Optional[str] = None,
    limit: int = 100,
) -> list[AuditLog]:
    """Most recent entries first, optionally narrowed. Admin only."""
    AccessGuard(db).check(actor, Action.READ, AuditLogRecord())

    query = db.query(AuditLog)
    if resource_type is not None:
        query = query.filter(AuditLog.resource_type == resource_type)
    if resource_id is not None:
        query = query.filter(AuditLog.resource_id == resource_id)
    if user_id is not None:
        query = query.filter(AuditLog.user_id == user_id)
    return query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()


def purge_old_entries(db: Session, days: int = 365) -> int:
    """Delete entries older than *days*; ``days <= 0`` keeps everything."""
    if days <= 0:
        return 0

    cutoff = datetime.now(timezone.utc) - timedelta(days=days)
    try:
        count = db.query(AuditLog).filter(AuditLog.created_at < cutoff).delete()
        db.commit()
        return count
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.warning("Failed to purge audit log: %s", e)
        db.rollback()
        return 0
