"""Identity store: global role and active flag per actor."""

from typing import Optional

from ..core.access import GlobalRole
from ..exceptions import UserNotFoundError
from ..models.user import Profile
from .base import BaseRepository


class IdentityRepository(BaseRepository[Profile]):
    """Profile lookups.

    ``get_role`` and ``is_active`` are the only calls the resolver makes
    here. Role writes go through identity_service, which guards them first.
    """

    model_class = Profile
    id_column = "user_id"
    not_found_error = UserNotFoundError

    def get_role(self, user_id: str) -> Optional[GlobalRole]:
        role = (
            self.db.query(Profile.role)
            .filter(Profile.user_id == user_id)
            .scalar()
        )
        if role is None:
            return None
        try:
            return GlobalRole(role)
        except ValueError:
            # An unknown role string grants nothing.
            return None

    def is_active(self, user_id: str) -> bool:
        active = (
            self.db.query(Profile.is_active)
            .filter(Profile.user_id == user_id)
            .scalar()
        )
        return bool(active)

    def get_by_email(self, email: str) -> Optional[Profile]:
        return self.db.query(Profile).filter(Profile.email == email).first()

    def count_accounts(self) -> int:
        return self.db.query(Profile).count()

    def count_active_admins(self) -> int:
        return (
            self.db.query(Profile)
            .filter(Profile.role == GlobalRole.ADMIN.value, Profile.is_active.is_(True))
            .count()
        )
