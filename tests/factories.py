"""Row factories and auth helpers shared by the tests.

Rows are written straight through the ORM so each test can set up exactly
the access-control state it needs without going through guarded services.
"""

import itertools
from datetime import datetime, timedelta, timezone
from typing import Optional

from passlib.hash import bcrypt

from timekeeper.core.access import Actor, GlobalRole, ProjectRole
from timekeeper.core.config import settings
from timekeeper.core.token_factory import issue_token
from timekeeper.models import Profile, Project, ProjectManagerGrant, ProjectMember, TimeEntry
from timekeeper.repositories.base import new_id

PASSWORD = "correct-horse-battery"
_PASSWORD_HASH = bcrypt.hash(PASSWORD)
_counter = itertools.count(1)

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def make_user(db, role: GlobalRole = GlobalRole.MEMBER, name: Optional[str] = None, active: bool = True) -> Profile:
    n = next(_counter)
    profile = Profile(
        user_id=new_id(),
        email=f"user{n}@example.com",
        full_name=name or f"User {n}",
        password_hash=_PASSWORD_HASH,
        role=GlobalRole(role).value,
        is_active=active,
    )
    db.add(profile)
    db.commit()
    return profile


def actor_for(profile: Profile) -> Actor:
    return Actor(user_id=profile.user_id, role=profile.role, is_active=profile.is_active)


def make_project(db, creator: Optional[Profile] = None, name: str = "Apollo", owner_membership: bool = True) -> Project:
    """Project row; by default the creator also gets the owner membership."""
    project = Project(
        id=new_id(),
        name=name,
        created_by=creator.user_id if creator else None,
    )
    db.add(project)
    db.flush()
    if creator is not None and owner_membership:
        db.add(ProjectMember(
            id=new_id(), project_id=project.id, user_id=creator.user_id,
            role=ProjectRole.OWNER.value, can_edit_project=True,
        ))
    db.commit()
    return project


def add_member(
    db,
    project: Project,
    user: Profile,
    role: ProjectRole = ProjectRole.MEMBER,
    can_edit_project: bool = False,
    can_view_reports: bool = True,
) -> ProjectMember:
    membership = ProjectMember(
        id=new_id(),
        project_id=project.id,
        user_id=user.user_id,
        role=ProjectRole(role).value,
        can_edit_project=can_edit_project,
        can_view_reports=can_view_reports,
    )
    db.add(membership)
    db.commit()
    return membership


def make_grant(db, manager: Profile, project: Project, **capabilities) -> ProjectManagerGrant:
    grant = ProjectManagerGrant(
        id=new_id(),
        manager_id=manager.user_id,
        project_id=project.id,
        **capabilities,
    )
    db.add(grant)
    db.commit()
    return grant


def make_entry(db, owner: Profile, project: Project, hours: float = 1.0, start: datetime = T0) -> TimeEntry:
    end = start + timedelta(hours=hours)
    entry = TimeEntry(
        id=new_id(),
        user_id=owner.user_id,
        project_id=project.id,
        description="Work",
        start_time=start,
        end_time=end,
        duration_minutes=int(hours * 60),
    )
    db.add(entry)
    db.commit()
    return entry


def auth_headers(profile: Profile) -> dict:
    token = issue_token(profile.user_id, profile.role, settings.jwt_secret_key)
    return {"Authorization": f"Bearer {token}"}
