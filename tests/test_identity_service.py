"""Tests for accounts: registration, login, role changes and deactivation."""

import pytest

from timekeeper.core.access import GlobalRole
from timekeeper.exceptions import AuthenticationError, ConflictError, Denied, ValidationError
from timekeeper.models import AuditLog
from timekeeper.services import identity_service

from tests.factories import PASSWORD, actor_for, make_entry, make_grant, make_project, make_user


class TestRegister:

    def test_first_account_becomes_admin(self, db):
        profile = identity_service.register_user(db, "Root@Example.com", "long-password", "Root")

        assert profile.role == "admin"
        assert profile.email == "root@example.com"
        assert profile.password_hash != "long-password"

    def test_later_accounts_need_an_admin(self, db):
        admin = make_user(db, GlobalRole.ADMIN)
        member = make_user(db)

        with pytest.raises(Denied):
            identity_service.register_user(db, "x@example.com", "long-password", "X")
        with pytest.raises(Denied):
            identity_service.register_user(db, "x@example.com", "long-password", "X", actor=actor_for(member))

        created = identity_service.register_user(
            db, "x@example.com", "long-password", "X", role=GlobalRole.MANAGER, actor=actor_for(admin)
        )
        assert created.role == "manager"

    def test_duplicate_email(self, db):
        identity_service.register_user(db, "a@example.com", "long-password", "A")
        admin = db.query(AuditLog).one().user_id

        with pytest.raises(ConflictError):
            identity_service.register_user(db, "A@example.com", "long-password", "A2", actor=_actor(db, admin))

    @pytest.mark.parametrize("email, password, name", [
        ("not-an-email", "long-password", "N"),
        ("n@example.com", "short", "N"),
        ("n@example.com", "long-password", "   "),
    ])
    def test_invalid_input(self, db, email, password, name):
        with pytest.raises(ValidationError):
            identity_service.register_user(db, email, password, name)


class TestAuthenticate:

    def test_valid_credentials(self, db):
        user = make_user(db)
        assert identity_service.authenticate(db, user.email, PASSWORD).user_id == user.user_id

    def test_wrong_password_and_deactivated(self, db):
        user = make_user(db)
        inactive = make_user(db, active=False)

        with pytest.raises(AuthenticationError):
            identity_service.authenticate(db, user.email, "wrong-password")
        with pytest.raises(AuthenticationError):
            identity_service.authenticate(db, inactive.email, PASSWORD)


class TestRoleChanges:

    def test_admin_changes_role_and_it_is_audited(self, db):
        admin = make_user(db, GlobalRole.ADMIN)
        user = make_user(db)

        updated = identity_service.change_role(db, actor_for(admin), user.user_id, "manager")

        assert updated.role == "manager"
        entry = db.query(AuditLog).filter_by(action="role_change").one()
        assert entry.resource_id == user.user_id

    def test_user_cannot_change_own_role(self, db):
        user = make_user(db, GlobalRole.MANAGER)
        with pytest.raises(Denied):
            identity_service.change_role(db, actor_for(user), user.user_id, "admin")

    def test_invalid_role(self, db):
        admin = make_user(db, GlobalRole.ADMIN)
        with pytest.raises(ValidationError):
            identity_service.change_role(db, actor_for(admin), make_user(db).user_id, "owner")

    def test_last_active_admin_is_protected(self, db):
        admin = make_user(db, GlobalRole.ADMIN)

        with pytest.raises(ConflictError):
            identity_service.change_role(db, actor_for(admin), admin.user_id, "member")
        with pytest.raises(ConflictError):
            identity_service.deactivate_user(db, actor_for(admin), admin.user_id)

    def test_promotion_to_admin_keeps_grants(self, db):
        admin = make_user(db, GlobalRole.ADMIN)
        manager = make_user(db, GlobalRole.MANAGER)
        grant = make_grant(db, manager, make_project(db, creator=admin))

        identity_service.change_role(db, actor_for(admin), manager.user_id, "admin")

        db.refresh(grant)
        assert grant.manager_id == manager.user_id

    def test_deactivate(self, db):
        admin = make_user(db, GlobalRole.ADMIN)
        user = make_user(db)

        assert identity_service.deactivate_user(db, actor_for(admin), user.user_id).is_active is False


class TestProfiles:

    def test_update_own_profile(self, db):
        user = make_user(db)
        updated = identity_service.update_profile(db, actor_for(user), user.user_id, full_name="New Name", timezone="Europe/Paris")
        assert (updated.full_name, updated.timezone) == ("New Name", "Europe/Paris")

    def test_cannot_update_someone_else(self, db):
        user = make_user(db)
        with pytest.raises(Denied):
            identity_service.update_profile(db, actor_for(user), make_user(db).user_id, full_name="Hacked")

    def test_visible_users_excludes_inactive(self, db):
        admin = make_user(db, GlobalRole.ADMIN)
        active = make_user(db)
        inactive = make_user(db, active=False)

        visible = {p.user_id for p in identity_service.list_visible_users(db, actor_for(admin))}
        assert visible == {admin.user_id, active.user_id}
        everyone = identity_service.list_visible_users(db, actor_for(admin), include_inactive=True)
        assert inactive.user_id in {p.user_id for p in everyone}

    def test_manager_sees_entry_owners_through_grant(self, db):
        manager = make_user(db, GlobalRole.MANAGER)
        worker = make_user(db)
        project = make_project(db, creator=make_user(db))
        make_grant(db, manager, project)
        make_entry(db, worker, project)

        visible = {p.user_id for p in identity_service.list_visible_users(db, actor_for(manager))}
        assert visible == {manager.user_id, worker.user_id}
        assert identity_service.get_user(db, actor_for(manager), worker.user_id).user_id == worker.user_id


def _actor(db, user_id):
    from timekeeper.core.auth import load_actor
    return load_actor(db, user_id)
