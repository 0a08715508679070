"""Tests for MembershipService: add, role changes, removal and owner protection."""

import pytest

from timekeeper.core.access import GlobalRole, ProjectRole
from timekeeper.exceptions import ConflictError, Denied, UserNotFoundError, ValidationError
from timekeeper.models import AuditLog, ProjectMember
from timekeeper.services import MembershipService

from tests.factories import actor_for, add_member, make_grant, make_project, make_user


def _owner_row(db, project):
    return db.query(ProjectMember).filter_by(project_id=project.id, role="owner").one()


class TestAdd:

    def test_owner_adds_member(self, db):
        owner = make_user(db)
        newcomer = make_user(db)
        project = make_project(db, creator=owner)

        membership = MembershipService(db).add(actor_for(owner), project.id, newcomer.user_id, ProjectRole.MEMBER)

        assert membership.role == "member"
        assert membership.added_by == owner.user_id
        assert db.query(AuditLog).filter_by(action="member_add").count() == 1

    def test_admin_adds_member_without_membership(self, db):
        admin = make_user(db, GlobalRole.ADMIN)
        newcomer = make_user(db)
        project = make_project(db, creator=make_user(db))

        membership = MembershipService(db).add(actor_for(admin), project.id, newcomer.user_id, "manager")
        assert membership.role == "manager"

    def test_plain_member_cannot_add(self, db):
        member = make_user(db)
        project = make_project(db, creator=make_user(db))
        add_member(db, project, member, ProjectRole.MEMBER)

        with pytest.raises(Denied):
            MembershipService(db).add(actor_for(member), project.id, make_user(db).user_id)

    def test_grant_holder_cannot_add(self, db):
        manager = make_user(db, GlobalRole.MANAGER)
        project = make_project(db, creator=make_user(db))
        make_grant(db, manager, project, can_edit_entries=True, can_edit_project=True)

        with pytest.raises(Denied):
            MembershipService(db).add(actor_for(manager), project.id, make_user(db).user_id)

    def test_duplicate_is_conflict(self, db):
        owner = make_user(db)
        member = make_user(db)
        project = make_project(db, creator=owner)
        add_member(db, project, member)

        with pytest.raises(ConflictError):
            MembershipService(db).add(actor_for(owner), project.id, member.user_id)

    def test_unknown_or_inactive_target(self, db):
        owner = make_user(db)
        project = make_project(db, creator=owner)
        inactive = make_user(db, active=False)
        svc = MembershipService(db)

        with pytest.raises(UserNotFoundError):
            svc.add(actor_for(owner), project.id, "nobody")
        with pytest.raises(ValidationError):
            svc.add(actor_for(owner), project.id, inactive.user_id)

    def test_invalid_role(self, db):
        owner = make_user(db)
        project = make_project(db, creator=owner)

        with pytest.raises(ValidationError):
            MembershipService(db).add(actor_for(owner), project.id, make_user(db).user_id, "superuser")


class TestSetRoleAndRemove:

    def test_manager_promotes_member(self, db):
        lead = make_user(db)
        member = make_user(db)
        project = make_project(db, creator=make_user(db))
        add_member(db, project, lead, ProjectRole.MANAGER)
        membership = add_member(db, project, member)

        updated = MembershipService(db).set_role(
            actor_for(lead), membership.id, ProjectRole.MANAGER, can_view_reports=False
        )
        assert updated.role == "manager"
        assert updated.can_view_reports is False

    def test_cannot_demote_last_owner(self, db):
        owner = make_user(db)
        project = make_project(db, creator=owner)

        with pytest.raises(ConflictError):
            MembershipService(db).set_role(actor_for(owner), _owner_row(db, project).id, ProjectRole.MEMBER)

    def test_can_demote_owner_when_another_exists(self, db):
        owner = make_user(db)
        co_owner = make_user(db)
        project = make_project(db, creator=owner)
        add_member(db, project, co_owner, ProjectRole.OWNER)

        updated = MembershipService(db).set_role(actor_for(co_owner), _owner_row_of(db, project, owner).id, "member")
        assert updated.role == "member"

    def test_cannot_remove_last_owner(self, db):
        owner = make_user(db)
        project = make_project(db, creator=owner)

        with pytest.raises(ConflictError):
            MembershipService(db).remove(actor_for(owner), _owner_row(db, project).id)

    def test_member_leaves_project(self, db):
        member = make_user(db)
        project = make_project(db, creator=make_user(db))
        membership = add_member(db, project, member)

        MembershipService(db).remove(actor_for(member), membership.id)
        assert db.query(ProjectMember).filter_by(user_id=member.user_id).count() == 0

    def test_member_cannot_remove_colleague(self, db):
        member = make_user(db)
        colleague = make_user(db)
        project = make_project(db, creator=make_user(db))
        add_member(db, project, member)
        target = add_member(db, project, colleague)

        with pytest.raises(Denied):
            MembershipService(db).remove(actor_for(member), target.id)


class TestReads:

    def test_members_of_visible_to_members(self, db):
        owner = make_user(db)
        viewer = make_user(db)
        project = make_project(db, creator=owner)
        add_member(db, project, viewer, ProjectRole.VIEWER)

        rows = MembershipService(db).members_of(actor_for(viewer), project.id)
        assert {m.user_id for m in rows} == {owner.user_id, viewer.user_id}

    def test_members_of_hidden_from_outsiders(self, db):
        project = make_project(db, creator=make_user(db))
        outsider = make_user(db)

        assert MembershipService(db).members_of(actor_for(outsider), project.id) == []

    def test_membership_of_returns_none_when_absent(self, db):
        owner = make_user(db)
        project = make_project(db, creator=owner)
        svc = MembershipService(db)

        assert svc.membership_of(actor_for(owner), project.id, owner.user_id).role == "owner"
        assert svc.membership_of(actor_for(owner), project.id, make_user(db).user_id) is None


def _owner_row_of(db, project, user):
    return db.query(ProjectMember).filter_by(project_id=project.id, user_id=user.user_id).one()
