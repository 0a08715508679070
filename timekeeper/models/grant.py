"""Delegated grant model.

An admin-issued capability set giving one manager access to one project,
independent of project membership. The grantee's role is re-checked on every
evaluation; a grant whose holder stopped being a manager stays in place but
has no effect.
"""

from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.access import Capability
from ..database import Base


class ProjectManagerGrant(Base):
    __tablename__ = "project_manager_grants"
    __table_args__ = (
        UniqueConstraint("manager_id", "project_id", name="uq_grants_manager_project"),
    )

    id = Column(String(36), primary_key=True)
    manager_id = Column(String(36), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    can_view_entries = Column(Boolean, nullable=False, default=True)
    can_edit_entries = Column(Boolean, nullable=False, default=False)
    can_view_reports = Column(Boolean, nullable=False, default=True)
    can_edit_project = Column(Boolean, nullable=False, default=False)
    granted_by = Column(String(36), ForeignKey("profiles.user_id", ondelete="SET NULL"), nullable=True)
    granted_at = Column(DateTime(timezone=True), server_default=func.now())

    project = relationship("Project", back_populates="grants")

    def has(self, capability: Capability) -> bool:
        return bool(getattr(self, capability.value))

    @property
    def has_any_capability(self) -> bool:
        return any(self.has(cap) for cap in Capability)
