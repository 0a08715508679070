"""Tests for the audit trail."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from timekeeper.core.access import GlobalRole
from timekeeper.exceptions import Denied
from timekeeper.models import AuditLog
from timekeeper.services import audit_service

from tests.factories import actor_for, make_user


class TestAuditService:

    def test_log_serializes_details(self, db):
        admin = make_user(db, GlobalRole.ADMIN)
        audit_service.log(
            db, user_id=admin.user_id, action="grant_issue", resource_type="grant",
            resource_id="g-1", details={"project_id": "p-1"},
        )
        entry = db.query(AuditLog).one()
        assert entry.action == "grant_issue"
        assert json.loads(entry.details) == {"project_id": "p-1"}

    def test_list_entries_filters_and_requires_admin(self, db):
        admin = make_user(db, GlobalRole.ADMIN)
        member = make_user(db)
        audit_service.log(db, user_id=admin.user_id, action="role_change", resource_type="profile",
                          resource_id=member.user_id)
        audit_service.log(db, user_id=admin.user_id, action="project_create", resource_type="project",
                          resource_id="p-1")

        entries = audit_service.list_entries(db, actor_for(admin), resource_type="project")
        assert [e.action for e in entries] == ["project_create"]
        assert len(audit_service.list_entries(db, actor_for(admin))) == 2

        with pytest.raises(Denied):
            audit_service.list_entries(db, actor_for(member))

    def test_purge_removes_only_old_entries(self, db):
        admin = make_user(db, GlobalRole.ADMIN)
        audit_service.log(db, user_id=admin.user_id, action="old", resource_type="project")
        audit_service.log(db, user_id=admin.user_id, action="recent", resource_type="project")
        old = db.query(AuditLog).filter(AuditLog.action == "old").one()
        old.created_at = datetime.now(timezone.utc) - timedelta(days=400)
        db.commit()

        assert audit_service.purge_old_entries(db, days=365) == 1
        assert [e.action for e in db.query(AuditLog).all()] == ["recent"]

    def test_purge_disabled_with_zero_days(self, db):
        audit_service.log(db, user_id=None, action="kept", resource_type="project")
        assert audit_service.purge_old_entries(db, days=0) == 0
        assert db.query(AuditLog).count() == 1
