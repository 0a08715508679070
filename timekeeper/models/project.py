"""Project and ProjectMember models.

A project is created by any active actor; the creator receives an owner
membership in the same transaction. Memberships carry a project-scoped role
and two capability flags.
"""

from sqlalchemy import Column, String, DateTime, Boolean, Text, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.access import ProjectRole
from ..database import Base


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(7), nullable=False, default="#3b82f6")
    status = Column(String(20), nullable=False, default="active")
    created_by = Column(String(36), ForeignKey("profiles.user_id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    members = relationship(
        "ProjectMember",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    grants = relationship(
        "ProjectManagerGrant",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    time_entries = relationship(
        "TimeEntry",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ProjectMember(Base):
    """Project-scoped role assignment. Unique per (project_id, user_id)."""

    __tablename__ = "project_members"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
        Index("ix_project_members_user_id", "user_id"),
    )

    id = Column(String(36), primary_key=True)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False)
    role = Column(String(20), nullable=False, default=ProjectRole.MEMBER.value)
    can_edit_project = Column(Boolean, nullable=False, default=False)
    can_view_reports = Column(Boolean, nullable=False, default=True)
    added_by = Column(String(36), ForeignKey("profiles.user_id", ondelete="SET NULL"), nullable=True)
    added_at = Column(DateTime(timezone=True), server_default=func.now())

    project = relationship("Project", back_populates="members")
