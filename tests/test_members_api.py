"""
Users, teams, login and member performance.
"""


class TestUsers:
    def test_create_hides_password_hash(self, client, team):
        res = client.post("/api/users", json={
            "name": "jane", "role": "Team Leader", "password": "pw", "team_id": team["id"],
        })
        assert res.status_code == 201
        data = res.get_json()
        assert data["role"] == "Team Leader"
        assert "password_hash" not in data
        assert "password" not in data

    def test_unknown_role_rejected(self, client):
        res = client.post("/api/users", json={"name": "x", "role": "Overlord"})
        assert res.status_code == 400

    def test_duplicate_name_conflicts(self, client, admin_user):
        res = client.post("/api/users", json={"name": "admin", "role": "Staff"})
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_DUPLICATE"

    def test_sub_team_leader_only_kept_for_staff(self, client, admin_user):
        res = client.post("/api/users", json={
            "name": "lead", "role": "Team Leader", "sub_team_leader_id": admin_user["id"],
        })
        assert res.get_json()["sub_team_leader_id"] is None
        res = client.post("/api/users", json={
            "name": "staff", "role": "Staff", "sub_team_leader_id": admin_user["id"],
        })
        assert res.get_json()["sub_team_leader_id"] == admin_user["id"]

    def test_change_role(self, client, admin_user):
        res = client.put(f"/api/users/{admin_user['id']}", json={"role": "Director"})
        assert res.get_json()["role"] == "Director"

    def test_delete(self, client, admin_user):
        assert client.delete(f"/api/users/{admin_user['id']}").status_code == 200
        assert client.get("/api/users").get_json() == []


class TestTeams:
    def test_update_team(self, client, team):
        res = client.put(f"/api/teams/{team['id']}", json={"name": "Platform"})
        assert res.get_json()["name"] == "Platform"

    def test_delete_team_detaches_members(self, client, team, admin_user):
        assert client.delete(f"/api/teams/{team['id']}").status_code == 200
        users = client.get("/api/users").get_json()
        assert users[0]["team_id"] is None


class TestLogin:
    def test_valid_credentials_return_user(self, client, admin_user):
        res = client.post("/api/auth/login", json={"username": "admin", "password": "secret"})
        assert res.status_code == 200
        assert res.get_json()["id"] == admin_user["id"]

    def test_bad_password_is_plain_text_401(self, client, admin_user):
        res = client.post("/api/auth/login", json={"username": "admin", "password": "nope"})
        assert res.status_code == 401
        assert res.mimetype == "text/plain"
        assert res.get_data(as_text=True) == "Invalid username or password"

    def test_unknown_user(self, client):
        res = client.post("/api/auth/login", json={"username": "ghost", "password": "x"})
        assert res.status_code == 401


class TestPerformance:
    def test_empty_member_scores_zero(self, client, admin_user):
        res = client.get(f"/api/users/{admin_user['id']}/performance")
        data = res.get_json()
        assert data["member_id"] == admin_user["id"]
        assert data["projects_led"] == 0
        assert data["project_success_rate"]["value"] == 0.0
        assert data["overall_performance"]["rating"] == "Needs Improvement"

    def test_aggregates_led_projects_and_tasks(self, client, admin_user):
        done = client.post("/api/projects", json={
            "name": "Done", "owner_id": admin_user["id"], "status": "Completed",
            "allocated_hours": 10, "used_hours": 5,
            "end_user_feedback": {"rating": 4},
        }).get_json()
        client.post("/api/projects", json={"name": "Open", "owner_id": admin_user["id"]})
        client.post("/api/tasks", json={
            "project_id": done["id"], "title": "t", "assignee_id": admin_user["id"], "status": "05.Completed",
        })

        data = client.get(f"/api/users/{admin_user['id']}/performance").get_json()
        assert data["projects_led"] == 2
        assert data["tasks_assigned"] == 1
        assert data["project_success_rate"]["value"] == 50.0
        assert data["stakeholder_satisfaction"]["value"] == 4.0
        assert data["efficiency_metrics"]["resource_utilization"] == 50.0
        assert data["efficiency_metrics"]["change_request_efficiency"] == 100.0

    def test_unknown_member_404(self, client):
        assert client.get("/api/users/42/performance").status_code == 404
