"""
Project API tests.

Covers:
    - create / read / update through /api/projects
    - lead alias (lead_id -> owner_id) and validation errors
    - timer stamp stored naive and returned as "YYYY-MM-DD HH:MM:SS"
    - cascading soft delete returns every deleted id and hides tasks
"""

import pytest


def _create(client, **fields):
    body = {"name": "Migration", "status": "Not started", **fields}
    res = client.post("/api/projects", json=body)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


class TestProjectCrud:
    def test_create_returns_snake_case_record(self, client, admin_user, team):
        data = _create(client, lead_id=admin_user["id"], team_id=team["id"], allocated_hours="12.5")
        assert data["owner_id"] == admin_user["id"]
        assert data["team_id"] == team["id"]
        assert data["allocated_hours"] == 12.5
        assert data["used_hours"] == 0
        assert data["users"] == []

    def test_list_and_get(self, client):
        p = _create(client)
        listed = client.get("/api/projects").get_json()
        assert [x["id"] for x in listed] == [p["id"]]
        assert client.get(f"/api/projects/{p['id']}").get_json()["name"] == "Migration"

    def test_get_missing_returns_404(self, client):
        res = client.get("/api/projects/999")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_create_requires_name(self, client):
        res = client.post("/api/projects", json={"name": "  "})
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_unknown_status_rejected(self, client):
        p = _create(client)
        res = client.put(f"/api/projects/{p['id']}", json={"status": "Done-ish"})
        assert res.status_code == 400

    def test_unknown_parent_rejected(self, client):
        res = client.post("/api/projects", json={"name": "Child", "parent_id": 404})
        assert res.status_code == 400

    def test_negative_used_hours_clamped(self, client):
        p = _create(client)
        res = client.put(f"/api/projects/{p['id']}", json={"used_hours": -3})
        assert res.get_json()["used_hours"] == 0

    def test_update_json_columns(self, client, admin_user):
        p = _create(client)
        usage = [{"user_id": admin_user["id"], "date": "2024-05-01T10:00:00+00:00", "saved_hours": 2}]
        res = client.put(f"/api/projects/{p['id']}", json={"last_used_by": usage, "saved_hours": 2})
        data = res.get_json()
        assert data["last_used_by"] == usage
        assert data["saved_hours"] == 2


class TestTimerStamp:
    def test_timer_start_time_round_trips_in_space_format(self, client):
        p = _create(client)
        res = client.put(f"/api/projects/{p['id']}", json={
            "status": "Started", "timer_start_time": "2024-03-01T09:30:00+00:00",
        })
        assert res.get_json()["timer_start_time"] == "2024-03-01 09:30:00"

    def test_timer_start_time_converted_to_utc(self, client):
        p = _create(client)
        res = client.put(f"/api/projects/{p['id']}", json={"timer_start_time": "2024-03-01T11:30:00+02:00"})
        assert res.get_json()["timer_start_time"] == "2024-03-01 09:30:00"

    def test_clearing_timer(self, client):
        p = _create(client)
        client.put(f"/api/projects/{p['id']}", json={"timer_start_time": "2024-03-01T09:30:00Z"})
        res = client.put(f"/api/projects/{p['id']}", json={"timer_start_time": None})
        assert res.get_json()["timer_start_time"] is None


class TestCascadingDelete:
    def test_delete_returns_descendants_and_hides_tasks(self, client):
        root = _create(client, name="Root")
        child = _create(client, name="Child", parent_id=root["id"])
        grandchild = _create(client, name="Grandchild", parent_id=child["id"])
        other = _create(client, name="Other")
        res = client.post("/api/tasks", json={"project_id": grandchild["id"], "title": "Deep task"})
        assert res.status_code == 201

        res = client.delete(f"/api/projects/{root['id']}")
        assert res.status_code == 200
        ids = res.get_json()["deleted_project_ids"]
        assert ids[0] == root["id"]
        assert set(ids) == {root["id"], child["id"], grandchild["id"]}

        remaining = [p["id"] for p in client.get("/api/projects").get_json()]
        assert remaining == [other["id"]]
        assert client.get("/api/tasks").get_json() == []
        assert client.get(f"/api/projects/{child['id']}").status_code == 404

    @pytest.mark.parametrize("method", ["put", "delete"])
    def test_deleted_project_is_gone(self, client, method):
        p = _create(client)
        client.delete(f"/api/projects/{p['id']}")
        res = getattr(client, method)(f"/api/projects/{p['id']}", json={})
        assert res.status_code == 404
