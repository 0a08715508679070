"""Profile and AuditLog models.

Profiles are the identity store: one row per actor carrying the global role
and the active flag. Accounts are never deleted, only deactivated.
AuditLog records every mutation of access-control state.
"""

from sqlalchemy import Column, String, DateTime, Boolean, Integer, Text, ForeignKey
from sqlalchemy.sql import func

from ..core.access import GlobalRole
from ..database import Base


class Profile(Base):
    """Actor account.

    Roles (account-wide, overlaid per project by memberships and grants):
        admin   -- reads and writes everything, issues grants, changes roles
        manager -- sees what its memberships and delegated grants expose
        member  -- sees its own rows and the projects it belongs to
    """

    __tablename__ = "profiles"

    user_id = Column(String(36), primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    password_hash = Column(Text, nullable=True)
    role = Column(String(20), nullable=False, default=GlobalRole.MEMBER.value)
    is_active = Column(Boolean, nullable=False, default=True)
    timezone = Column(String(64), nullable=False, default="UTC")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class AuditLog(Base):
    """Immutable record of access-control mutations.

    Fields:
        action        -- user_register, role_change, user_deactivate,
                         member_add, member_role_change, member_remove,
                         grant_issue, grant_revoke, project_create, project_delete
        resource_type -- profile, membership, grant, project
        resource_id   -- ID of the affected row
        details       -- JSON string with additional context
    """

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("profiles.user_id"), nullable=True)
    action = Column(String(50), nullable=False)
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(String(255), nullable=True)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
