"""API tests for time entries."""

from timekeeper.core.access import GlobalRole

from tests.factories import auth_headers, make_entry, make_grant, make_project, make_user


class TestTimeEntriesApi:

    def test_create_and_list_own(self, client, db):
        user = make_user(db)
        project = make_project(db, creator=make_user(db))
        headers = auth_headers(user)

        resp = client.post("/api/time-entries", json={
            "project_id": project.id,
            "start_time": "2026-03-02T09:00:00Z",
            "end_time": "2026-03-02T10:30:00Z",
            "description": "Planning",
        }, headers=headers)
        assert resp.status_code == 201
        assert resp.json()["duration_minutes"] == 90

        listed = client.get("/api/time-entries", headers=headers).json()
        assert [e["description"] for e in listed] == ["Planning"]

    def test_inverted_interval_is_422(self, client, db):
        user = make_user(db)
        project = make_project(db, creator=user)
        resp = client.post("/api/time-entries", json={
            "project_id": project.id,
            "start_time": "2026-03-02T10:00:00Z",
            "end_time": "2026-03-02T09:00:00Z",
        }, headers=auth_headers(user))
        assert resp.status_code == 422

    def test_view_only_grant_reads_but_cannot_edit(self, client, db):
        manager = make_user(db, GlobalRole.MANAGER)
        worker = make_user(db)
        project = make_project(db, creator=make_user(db))
        make_grant(db, manager, project, can_view_entries=True, can_edit_entries=False)
        entry = make_entry(db, worker, project)
        headers = auth_headers(manager)

        assert client.get(f"/api/time-entries/{entry.id}", headers=headers).status_code == 200
        resp = client.put(f"/api/time-entries/{entry.id}", json={"description": "edited"}, headers=headers)
        assert resp.status_code == 403

    def test_outsider_cannot_see_or_delete(self, client, db):
        owner = make_user(db)
        outsider = make_user(db)
        entry = make_entry(db, owner, make_project(db, creator=owner))
        headers = auth_headers(outsider)

        assert client.get("/api/time-entries", headers=headers).json() == []
        assert client.get(f"/api/time-entries/{entry.id}", headers=headers).status_code == 403
        assert client.delete(f"/api/time-entries/{entry.id}", headers=headers).status_code == 403

    def test_reassign_endpoint(self, client, db):
        admin = make_user(db, GlobalRole.ADMIN)
        owner = make_user(db)
        target = make_user(db)
        entry = make_entry(db, owner, make_project(db, creator=owner))

        assert client.put(
            f"/api/time-entries/{entry.id}/owner", json={"user_id": target.user_id}, headers=auth_headers(owner)
        ).status_code == 403
        resp = client.put(
            f"/api/time-entries/{entry.id}/owner", json={"user_id": target.user_id}, headers=auth_headers(admin)
        )
        assert resp.status_code == 200
        assert resp.json()["user_id"] == target.user_id
