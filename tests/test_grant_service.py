"""Tests for delegated grant issue/revoke and visibility of grant rows."""

import pytest

from timekeeper.core.access import Action, GlobalRole, TimeEntryRecord
from timekeeper.exceptions import ConflictError, Denied, InvalidGranteeError, ProjectNotFoundError
from timekeeper.models import ProjectManagerGrant
from timekeeper.repositories import GrantRepository
from timekeeper.schemas.grant import GrantCapabilities
from timekeeper.services import grant_service
from timekeeper.services.access_guard import AccessGuard

from tests.factories import actor_for, make_entry, make_grant, make_project, make_user


class TestIssue:

    def test_admin_issues_grant_to_manager(self, db):
        admin = make_user(db, GlobalRole.ADMIN)
        manager = make_user(db, GlobalRole.MANAGER)
        project = make_project(db, creator=make_user(db))

        grant = grant_service.issue(
            db, actor_for(admin), manager.user_id, project.id,
            GrantCapabilities(can_view_entries=True, can_edit_entries=True),
        )

        assert grant.can_edit_entries is True
        assert grant.granted_by == admin.user_id

    def test_reissue_replaces_flags(self, db):
        admin = make_user(db, GlobalRole.ADMIN)
        manager = make_user(db, GlobalRole.MANAGER)
        project = make_project(db, creator=make_user(db))
        caps = GrantCapabilities(can_edit_entries=True)

        first = grant_service.issue(db, actor_for(admin), manager.user_id, project.id, caps)
        second = grant_service.issue(
            db, actor_for(admin), manager.user_id, project.id, GrantCapabilities(can_view_entries=False)
        )

        assert first.id == second.id
        assert second.can_view_entries is False
        assert second.can_edit_entries is False
        assert db.query(ProjectManagerGrant).count() == 1

    @pytest.mark.parametrize("role", [GlobalRole.MEMBER, GlobalRole.ADMIN])
    def test_non_manager_grantee_rejected(self, db, role):
        admin = make_user(db, GlobalRole.ADMIN)
        grantee = make_user(db, role)
        project = make_project(db, creator=make_user(db))

        with pytest.raises(InvalidGranteeError) as exc_info:
            grant_service.issue(db, actor_for(admin), grantee.user_id, project.id, GrantCapabilities())

        assert exc_info.value.status_code == 422
        assert db.query(ProjectManagerGrant).count() == 0

    def test_unknown_grantee_is_invalid(self, db):
        admin = make_user(db, GlobalRole.ADMIN)
        project = make_project(db, creator=admin)

        with pytest.raises(InvalidGranteeError) as exc_info:
            grant_service.issue(db, actor_for(admin), "no-such-user", project.id, GrantCapabilities())

        assert exc_info.value.details == {"manager_id": "no-such-user", "role": None}
        assert db.query(ProjectManagerGrant).count() == 0

    def test_insert_race_falls_back_to_update(self, db, monkeypatch):
        admin = make_user(db, GlobalRole.ADMIN)
        manager = make_user(db, GlobalRole.MANAGER)
        project = make_project(db, creator=admin)
        existing = make_grant(db, manager, project, can_edit_entries=False)

        real_grant_for = GrantRepository.grant_for
        calls = []

        def _stale_first_read(self, manager_id, project_id):
            calls.append(1)
            if len(calls) == 1:
                return None
            return real_grant_for(self, manager_id, project_id)

        monkeypatch.setattr(GrantRepository, "grant_for", _stale_first_read)

        grant = grant_service.issue(
            db, actor_for(admin), manager.user_id, project.id, GrantCapabilities(can_edit_entries=True)
        )

        assert grant.id == existing.id
        assert grant.can_edit_entries is True
        assert db.query(ProjectManagerGrant).count() == 1

    def test_unresolvable_race_is_conflict(self, db, monkeypatch):
        admin = make_user(db, GlobalRole.ADMIN)
        manager = make_user(db, GlobalRole.MANAGER)
        project = make_project(db, creator=admin)
        make_grant(db, manager, project)
        monkeypatch.setattr(GrantRepository, "grant_for", lambda self, manager_id, project_id: None)

        with pytest.raises(ConflictError):
            grant_service.issue(db, actor_for(admin), manager.user_id, project.id, GrantCapabilities())
        assert db.query(ProjectManagerGrant).count() == 1

    def test_only_admin_issues(self, db):
        manager = make_user(db, GlobalRole.MANAGER)
        owner = make_user(db, GlobalRole.MANAGER)
        project = make_project(db, creator=owner)

        with pytest.raises(Denied):
            grant_service.issue(db, actor_for(owner), manager.user_id, project.id, GrantCapabilities())

    def test_unknown_project(self, db):
        admin = make_user(db, GlobalRole.ADMIN)
        manager = make_user(db, GlobalRole.MANAGER)

        with pytest.raises(ProjectNotFoundError):
            grant_service.issue(db, actor_for(admin), manager.user_id, "missing", GrantCapabilities())

    def test_grant_takes_effect_and_role_change_disables_it(self, db):
        from timekeeper.services import identity_service

        admin = make_user(db, GlobalRole.ADMIN)
        manager = make_user(db, GlobalRole.MANAGER)
        project = make_project(db, creator=make_user(db))
        entry = make_entry(db, make_user(db), project)
        record = TimeEntryRecord.from_row(entry)
        grant_service.issue(db, actor_for(admin), manager.user_id, project.id, GrantCapabilities())

        assert AccessGuard(db).can(actor_for(manager), Action.READ, record)

        identity_service.change_role(db, actor_for(admin), manager.user_id, "member")

        assert db.query(ProjectManagerGrant).count() == 1
        assert not AccessGuard(db).can(actor_for(manager), Action.READ, record)


class TestRevoke:

    def test_revoke_existing(self, db):
        admin = make_user(db, GlobalRole.ADMIN)
        grant = make_grant(db, make_user(db, GlobalRole.MANAGER), make_project(db, creator=admin))

        assert grant_service.revoke(db, actor_for(admin), grant.id) is True
        assert db.query(ProjectManagerGrant).count() == 0

    def test_revoke_missing_is_noop(self, db):
        admin = make_user(db, GlobalRole.ADMIN)
        assert grant_service.revoke(db, actor_for(admin), "never-existed") is False

    def test_grantee_cannot_revoke(self, db):
        manager = make_user(db, GlobalRole.MANAGER)
        grant = make_grant(db, manager, make_project(db, creator=make_user(db)))

        with pytest.raises(Denied):
            grant_service.revoke(db, actor_for(manager), grant.id)


class TestListing:

    def test_manager_sees_only_own_grants(self, db):
        admin = make_user(db, GlobalRole.ADMIN)
        manager = make_user(db, GlobalRole.MANAGER)
        other = make_user(db, GlobalRole.MANAGER)
        project = make_project(db, creator=admin)
        mine = make_grant(db, manager, project)
        make_grant(db, other, project)

        assert [g.id for g in grant_service.list_grants(db, actor_for(manager))] == [mine.id]
        assert [g.id for g in grant_service.grants_on(db, actor_for(manager), project.id)] == [mine.id]
        assert len(grant_service.grants_on(db, actor_for(admin), project.id)) == 2
        assert grant_service.grants_for(db, actor_for(manager), other.user_id) == []

    def test_get_grant_guarded(self, db):
        manager = make_user(db, GlobalRole.MANAGER)
        outsider = make_user(db)
        grant = make_grant(db, manager, make_project(db, creator=make_user(db)))

        assert grant_service.get_grant(db, actor_for(manager), grant.id).id == grant.id
        with pytest.raises(Denied):
            grant_service.get_grant(db, actor_for(outsider), grant.id)
