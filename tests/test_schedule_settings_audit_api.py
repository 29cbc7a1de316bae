"""
To-dos, leave, settings lists, system configuration and audit-log endpoints.
"""

import pytest


class TestTodos:
    def test_create_update_delete(self, client, admin_user):
        res = client.post("/api/todos", json={
            "title": "Standup", "owner_id": admin_user["id"], "due_date": "2024-05-01",
            "due_time": "09:00", "frequency": "Daily",
        })
        assert res.status_code == 201
        todo = res.get_json()
        assert todo["is_complete"] is False

        res = client.put(f"/api/todos/{todo['id']}", json={"is_complete": True})
        assert res.get_json()["is_complete"] is True

        assert client.delete(f"/api/todos/{todo['id']}").status_code == 200
        assert client.get("/api/todos").get_json() == []

    def test_owner_must_exist(self, client):
        res = client.post("/api/todos", json={"title": "x", "owner_id": 99})
        assert res.status_code == 400

    def test_unknown_frequency(self, client, admin_user):
        res = client.post("/api/todos", json={"title": "x", "owner_id": admin_user["id"], "frequency": "Hourly"})
        assert res.status_code == 400


class TestLeave:
    def test_create_and_list(self, client, admin_user):
        res = client.post("/api/leaves", json={
            "member_id": admin_user["id"], "start_date": "2024-06-01", "end_date": "2024-06-03", "reason": "Trip",
        })
        assert res.status_code == 201
        leave = res.get_json()
        assert leave["start_date"].startswith("2024-06-01T00:00:00")
        assert len(client.get("/api/leaves").get_json()) == 1

    def test_end_before_start_rejected(self, client, admin_user):
        res = client.post("/api/leaves", json={
            "member_id": admin_user["id"], "start_date": "2024-06-03", "end_date": "2024-06-01",
        })
        assert res.status_code == 400

    def test_delete(self, client, admin_user):
        leave = client.post("/api/leaves", json={
            "member_id": admin_user["id"], "start_date": "2024-06-01", "end_date": "2024-06-01",
        }).get_json()
        assert client.delete(f"/api/leaves/{leave['id']}").status_code == 200


class TestSettingsLists:
    @pytest.mark.parametrize("resource,body", [
        ("tools", {"name": "Power Automate"}),
        ("departments", {"name": "Finance", "description": "Money"}),
        ("project-phases", {"name": "Design"}),
        ("risk-levels", {"level": "High", "color": "#f00"}),
    ])
    def test_crud(self, client, resource, body):
        res = client.post(f"/api/{resource}", json=body)
        assert res.status_code == 201
        item = res.get_json()
        assert item["status"] == "Active"

        res = client.put(f"/api/{resource}/{item['id']}", json={"status": "Inactive"})
        assert res.get_json()["status"] == "Inactive"

        assert len(client.get(f"/api/{resource}").get_json()) == 1
        assert client.delete(f"/api/{resource}/{item['id']}").status_code == 200
        assert client.get(f"/api/{resource}").get_json() == []

    def test_required_field(self, client):
        res = client.post("/api/risk-levels", json={"color": "#f00"})
        assert res.status_code == 400

    def test_bad_status(self, client):
        res = client.post("/api/tools", json={"name": "x", "status": "Maybe"})
        assert res.status_code == 400

    def test_update_missing_item(self, client):
        assert client.put("/api/departments/5", json={"name": "x"}).status_code == 404


class TestSystemConfiguration:
    def test_singleton_created_on_first_read(self, client):
        data = client.get("/api/system-configuration").get_json()
        assert "organization_name" in data

    def test_update(self, client):
        res = client.put("/api/system-configuration", json={
            "organization_name": "Acme", "auto_escalation_days": "3",
        })
        data = res.get_json()
        assert data["organization_name"] == "Acme"
        assert data["auto_escalation_days"] == 3
        assert client.get("/api/system-configuration").get_json()["organization_name"] == "Acme"


class TestAuditLogs:
    def test_newest_first_with_total_header(self, client, admin_user):
        for ts, action in [("2024-01-01T00:00:00Z", "Old"), ("2024-03-01T00:00:00Z", "New")]:
            res = client.post("/api/audit-logs", json={
                "user_id": str(admin_user["id"]), "action": action, "timestamp": ts, "entity_id": 7,
            })
            assert res.status_code == 201

        res = client.get("/api/audit-logs")
        assert res.headers["X-Total-Count"] == "2"
        logs = res.get_json()
        assert [log["action"] for log in logs] == ["New", "Old"]
        assert logs[0]["entity_id"] == "7"
        assert logs[0]["user_id"] == admin_user["id"]

    def test_action_required(self, client):
        res = client.post("/api/audit-logs", json={"details": "x"})
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    def test_pagination(self, client):
        for i in range(3):
            client.post("/api/audit-logs", json={"action": f"A{i}"})
        res = client.get("/api/audit-logs?limit=2")
        assert len(res.get_json()) == 2
        assert res.headers["X-Total-Count"] == "3"

    def test_get_and_delete(self, client):
        log = client.post("/api/audit-logs", json={"action": "Create Project"}).get_json()
        assert client.get(f"/api/audit-logs/{log['id']}").get_json()["action"] == "Create Project"
        assert client.delete(f"/api/audit-logs/{log['id']}").status_code == 200
        assert client.get(f"/api/audit-logs/{log['id']}").status_code == 404


def test_health(client):
    assert client.get("/api/health").get_json()["status"] == "ok"


def test_unknown_route_is_json_404(client):
    res = client.get("/api/nope")
    assert res.status_code == 404
    assert res.get_json()["error"] == "Not found"
