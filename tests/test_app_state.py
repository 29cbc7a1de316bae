"""
AppState tests: local persistence, session lifecycle and an end-to-end
sync flow against the test backend through PulseGateway.
"""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from pulse.core.exceptions import RemoteCallError, ValidationError
from pulse.sync.app_state import AppState, LocalState

NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def state_path(tmp_path):
    return str(tmp_path / "client_state.json")


@pytest.fixture()
def state(gateway, state_path):
    s = AppState(gateway, LocalState(state_path), clock=lambda: NOW)
    yield s
    s.close()


class TestLocalState:
    def test_missing_file_gives_defaults(self, state_path):
        ls = LocalState(state_path).load()
        assert ls.current_user is None
        assert ls.active_tab == "dashboard"

    def test_corrupt_file_gives_defaults(self, state_path):
        with open(state_path, "w") as fh:
            fh.write("{not json")
        assert LocalState(state_path).load().current_user is None

    def test_save_and_load(self, state_path):
        ls = LocalState(state_path)
        ls.current_user = {"id": "1", "name": "ann"}
        ls.active_tab = "projects"
        ls.save()
        loaded = LocalState(state_path).load()
        assert loaded.current_user == {"id": "1", "name": "ann"}
        assert loaded.active_tab == "projects"


class TestSession:
    def test_login_requires_credentials(self, state):
        with pytest.raises(ValidationError):
            state.login("  ", "x")

    def test_bad_password_surfaces_server_message(self, state, admin_user):
        with pytest.raises(RemoteCallError, match="Invalid username or password"):
            state.login("admin", "wrong")
        assert state.current_user is None

    def test_login_hydrates_and_persists(self, state, admin_user, team, state_path):
        user = state.login("admin", "secret")
        assert user.id == str(admin_user["id"])
        assert state.store.get("members", user.id).name == "admin"
        assert state.store.get("teams", str(team["id"])).name == "Core"
        assert state.reminders.running
        with open(state_path) as fh:
            assert json.load(fh)["current_user"]["name"] == "admin"

    def test_restore_after_restart(self, gateway, state, admin_user, state_path):
        state.login("admin", "secret")
        state.reminders.stop()

        again = AppState(gateway, LocalState(state_path), clock=lambda: NOW)
        try:
            restored = again.restore()
            assert restored.name == "admin"
            assert again.store.get("members", restored.id) is not None
        finally:
            again.close()

    def test_logout_clears_everything(self, state, admin_user, state_path):
        state.login("admin", "secret")
        state.logout()
        assert state.current_user is None
        assert state.store.members == []
        assert not state.reminders.running
        assert LocalState(state_path).load().current_user is None

    def test_active_tab_persists(self, state, state_path):
        state.active_tab = "reports"
        assert LocalState(state_path).load().active_tab == "reports"

    def test_hydrate_failure_leaves_store_untouched(self, state, api_session, admin_user):
        state.login("admin", "secret")
        before = state.store.members
        api_session.fail_next = lambda method, path: path.startswith("/api/tools")
        with pytest.raises(RemoteCallError):
            state.hydrate()
        assert state.store.members == before


class TestEndToEnd:
    def test_project_timer_and_rollup_round_trip(self, state, api_session, client, admin_user, team):
        state.login("admin", "secret")
        c = state.coordinator

        parent = c.add_project({"name": "Parent", "team_id": str(team["id"]), "lead_id": str(admin_user["id"])})
        child = c.add_project({
            "name": "Child", "team_id": str(team["id"]), "lead_id": str(admin_user["id"]),
            "parent_id": parent.id, "weight": 100,
        })
        assert child.parent_id == parent.id

        c.project_timer_action(child.id, "start")
        assert state.store.get("projects", parent.id).status == "Started"
        server_child = client.get(f"/api/projects/{child.id}").get_json()
        assert server_child["timer_start_time"] == "2024-05-10 12:00:00"
        assert client.get(f"/api/projects/{parent.id}").get_json()["status"] == "Started"

        c.project_timer_action(child.id, "end")
        assert state.store.get("projects", child.id).status == "Completed"
        assert state.store.get("projects", parent.id).status == "Completed"

        actions = [log["action"] for log in client.get("/api/audit-logs").get_json()]
        assert "Update Project Timer" in actions
        assert "Create Project" in actions

    def test_timer_failure_rolls_back(self, state, api_session, admin_user, team):
        state.login("admin", "secret")
        project = state.coordinator.add_project({"name": "Solo", "team_id": str(team["id"])})

        api_session.fail_next = lambda method, path: method == "PUT"
        with pytest.raises(RemoteCallError) as exc_info:
            state.coordinator.project_timer_action(project.id, "start")
        assert exc_info.value.status_code == 503
        restored = state.store.get("projects", project.id)
        assert restored.status == "Not started"
        assert restored.timer_start_time is None

    def test_delete_project_removes_descendants(self, state, client, admin_user, team):
        state.login("admin", "secret")
        c = state.coordinator
        root = c.add_project({"name": "Root", "team_id": str(team["id"])})
        child = c.add_project({"name": "Kid", "team_id": str(team["id"]), "parent_id": root.id, "weight": 50})

        assert set(c.delete_project(root.id)) == {root.id, child.id}
        assert state.store.projects == []
        assert client.get("/api/projects").get_json() == []

    def test_member_performance_read_through(self, state, admin_user):
        state.login("admin", "secret")
        data = state.member_performance(admin_user["id"])
        assert data["member_id"] == admin_user["id"]


def test_from_config_builds_gateway(tmp_path):
    class Cfg:
        PULSE_API_BASE_URL = "http://backend:9"
        PULSE_REQUEST_TIMEOUT = 4
        PULSE_STATE_DIR = str(tmp_path)
        PULSE_REMINDER_INTERVAL = 1
        PULSE_REMINDER_LEAD_MINUTES = 2

    state = AppState.from_config(Cfg, session=MagicMock())
    assert state.gateway.base_url == "http://backend:9"
    assert state.local_state.path.endswith("client_state.json")
    assert state.reminders.interval == 1
