"""Identity store: accounts, credentials, global roles and activation.

Passwords are hashed with bcrypt via passlib and never stored or logged in
plaintext. The first account registered becomes admin; every later account
is provisioned by an admin. Accounts are deactivated, never deleted.

Role and activation changes are guarded by the resolver like any other
write: they touch privileged profile fields, which self-access never covers.
"""

import logging
from typing import Optional

from passlib.hash import bcrypt
from sqlalchemy.orm import Session

from ..core.access import Action, Actor, GlobalRole, ProfileRecord, ResourceType
from ..core.config import settings
from ..exceptions import AuthenticationError, ConflictError, Denied, ValidationError
from ..models.user import Profile
from ..repositories import IdentityRepository
from ..repositories.base import new_id
from . import audit_service
from .access_guard import AccessGuard

logger = logging.getLogger(__name__)


def register_user(
    db: Session,
    email: str,
    password: str,
    full_name: str,
    role: GlobalRole = GlobalRole.MEMBER,
    actor: Optional[Actor] = None,
) -> Profile:
    """Create an account.

    With no accounts yet, anyone may register and becomes admin. Otherwise
    *actor* must be allowed to write the new profile's role field, which in
    practice means an admin.

    Raises ValidationError for bad input, ConflictError for a taken email,
    Denied when the caller may not provision accounts.
    """
    email = email.strip().lower()
    if not email or "@" not in email:
        raise ValidationError("Valid email address required", field="email")
    if len(password) < settings.min_password_length:
        raise ValidationError(
            f"Password must be at least {settings.min_password_length} characters", field="password"
        )
    if not full_name.strip():
        raise ValidationError("Full name required", field="full_name")

    repo = IdentityRepository(db)
    if repo.get_by_email(email) is not None:
        raise ConflictError("Email already registered", details={"field": "email"})

    user_id = new_id()
    is_first_account = repo.count_accounts() == 0
    if is_first_account:
        effective_role = GlobalRole.ADMIN
    else:
        if actor is None:
            raise Denied(None, Action.WRITE.value, ResourceType.PROFILE.value,
                         "Registration is closed; ask an admin to create your account")
        AccessGuard(db).check(actor, Action.WRITE, ProfileRecord(subject_id=user_id, field="role"))
        effective_role = GlobalRole(role)

    profile = Profile(
        user_id=user_id,
        email=email,
        full_name=full_name.strip(),
        password_hash=bcrypt.hash(password),
        role=effective_role.value,
        is_active=True,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)

    if is_first_account:
        logger.info("First account registered as admin", extra={"actor_id": user_id})
    audit_service.log(
        db,
        user_id=actor.user_id if actor else user_id,
        action="user_register",
        resource_type=ResourceType.PROFILE.value,
        resource_id=user_id,
        details={"role": effective_role.value},
    )
    return profile


def authenticate(db: Session, email: str, password: str) -> Profile:
    """Check credentials. Raises AuthenticationError on any mismatch or a deactivated account."""
    profile = IdentityRepository(db).get_by_email(email.strip().lower())

    if profile is None or profile.password_hash is None:
        raise AuthenticationError("Invalid email or password")
    if not bcrypt.verify(password, profile.password_hash):
        raise AuthenticationError("Invalid email or password")
    if not profile.is_active:
        raise AuthenticationError("Account is deactivated")

    return profile


def get_user(db: Session, actor: Actor, user_id: str) -> Profile:
    profile = IdentityRepository(db).get_by_id(user_id)
    return AccessGuard(db).guard(actor, Action.READ, ProfileRecord.from_row(profile), lambda: profile)


def list_visible_users(db: Session, actor: Actor, include_inactive: bool = False) -> list[Profile]:
    """Active profiles the actor may see (all of them for an admin)."""
    query = db.query(Profile)
    if not include_inactive:
        query = query.filter(Profile.is_active.is_(True))
    query = AccessGuard(db).scoped_list(actor, ResourceType.PROFILE, query)
    return query.order_by(Profile.full_name, Profile.user_id).all()


def update_profile(
    db: Session,
    actor: Actor,
    user_id: str,
    full_name: Optional[str] = None,
    timezone: Optional[str] = None,
) -> Profile:
    profile = IdentityRepository(db).get_by_id(user_id)
    AccessGuard(db).check(actor, Action.WRITE, ProfileRecord.from_row(profile))

    if full_name is not None:
        if not full_name.strip():
            raise ValidationError("Full name required", field="full_name")
        profile.full_name = full_name.strip()
    if timezone is not None:
        profile.timezone = timezone
    db.commit()
    db.refresh(profile)
    return profile


def change_role(db: Session, actor: Actor, user_id: str, new_role: str) -> Profile:
    """Set a profile's global role.

    Grants held by the target are left alone: a grant is only honoured
    while its holder is a manager, so it goes dormant on demotion.
    """
    try:
        role = GlobalRole(new_role)
    except ValueError:
        valid = ", ".join(r.value for r in GlobalRole)
        raise ValidationError(f"Invalid role: {new_role}. Must be one of: {valid}", field="role") from None

    repo = IdentityRepository(db)
    profile = repo.get_by_id(user_id)
    AccessGuard(db).check(actor, Action.WRITE, ProfileRecord.from_row(profile, field="role"))

    previous = profile.role
    if previous == role.value:
        return profile
    if previous == GlobalRole.ADMIN.value and profile.is_active and repo.count_active_admins() <= 1:
        raise ConflictError("Cannot demote the last active admin", details={"user_id": user_id})

    profile.role = role.value
    db.commit()
    db.refresh(profile)

    logger.info(
        "Global role changed",
        extra={"actor_id": actor.user_id, "user_id": user_id, "from_role": previous, "to_role": role.value},
    )
    audit_service.log(
        db, user_id=actor.user_id, action="role_change", resource_type=ResourceType.PROFILE.value,
        resource_id=user_id, details={"from": previous, "to": role.value},
    )
    return profile


def deactivate_user(db: Session, actor: Actor, user_id: str) -> Profile:
    repo = IdentityRepository(db)
    profile = repo.get_by_id(user_id)
    AccessGuard(db).check(actor, Action.WRITE, ProfileRecord.from_row(profile, field="is_active"))

    if not profile.is_active:
        return profile
    if profile.role == GlobalRole.ADMIN.value and repo.count_active_admins() <= 1:
        raise ConflictError("Cannot deactivate the last active admin", details={"user_id": user_id})

    profile.is_active = False
    db.commit()
    db.refresh(profile)

    audit_service.log(
        db, user_id=actor.user_id, action="user_deactivate",
        resource_type=ResourceType.PROFILE.value, resource_id=user_id,
    )
    return profile
