"""
DomainStore and EffectDispatcher tests.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from pulse.core.exceptions import RemoteCallError
from pulse.sync.effects import Audit, EffectDispatcher, Notify
from pulse.sync.entities import AuditLog, Notification, Project, TeamMember
from pulse.sync.store import DomainStore

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def store():
    return DomainStore()


class TestViews:
    def test_view_is_read_only(self, store):
        store.upsert("projects", Project(id="1", name="A"))
        view = store.view("projects")
        assert view["1"].name == "A"
        with pytest.raises(TypeError):
            view["2"] = Project(id="2")

    def test_upsert_keeps_position(self, store):
        store.replace_all("projects", [Project(id="1"), Project(id="2")])
        store.upsert("projects", Project(id="1", name="renamed"))
        assert [p.id for p in store.projects] == ["1", "2"]
        assert store.get("projects", 1).name == "renamed"

    def test_get_none(self, store):
        assert store.get("projects", None) is None


class TestMemoizedIndexes:
    def test_reused_until_kind_changes(self, store):
        store.replace_all("members", [TeamMember(id="1")])
        first = store.members_by_id
        assert store.members_by_id is first
        store.upsert("projects", Project(id="9"))
        assert store.members_by_id is first
        store.upsert("members", TeamMember(id="2"))
        assert store.members_by_id is not first
        assert set(store.members_by_id) == {"1", "2"}

    def test_children_by_parent(self, store):
        store.replace_all("projects", [
            Project(id="1"), Project(id="2", parent_id="1"), Project(id="3", parent_id="1"),
        ])
        assert [c.id for c in store.children_by_parent["1"]] == ["2", "3"]
        assert "2" not in store.children_by_parent


class TestTransactions:
    def test_listeners_notified_once_per_transaction(self, store):
        seen = []
        store.subscribe(seen.append)
        with store.transaction():
            store.upsert("projects", Project(id="1"))
            store.upsert("projects", Project(id="2", parent_id="1"))
            store.remove("tasks", ["5"])
        assert seen == [frozenset({"projects"})]

    def test_unsubscribe(self, store):
        seen = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()
        store.upsert("projects", Project(id="1"))
        assert seen == []

    def test_failing_listener_does_not_break_commit(self, store):
        store.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        store.upsert("projects", Project(id="1"))
        assert store.get("projects", "1") is not None

    def test_remove_returns_present_entities(self, store):
        store.replace_all("projects", [Project(id="1"), Project(id="2")])
        removed = store.remove("projects", ["2", "404"])
        assert [p.id for p in removed] == ["2"]
        assert [p.id for p in store.projects] == ["1"]


class TestOrdering:
    def test_push_notification_newest_first(self, store):
        store.push_notification(Notification(id="a", recipient_id="1", message="first"))
        store.push_notification(Notification(id="b", recipient_id="1", message="second"))
        assert [n.id for n in store.notifications] == ["b", "a"]

    def test_audit_logs_sorted_by_timestamp(self, store):
        store.add_audit_log(AuditLog(id="1", timestamp="2024-01-01T00:00:00Z"))
        store.add_audit_log(AuditLog(id="2", timestamp="2024-03-01T00:00:00Z"))
        store.add_audit_log(AuditLog(id="3", timestamp="2024-02-01T00:00:00Z"))
        assert [a.id for a in store.audit_logs] == ["2", "3", "1"]

    def test_clear(self, store):
        store.upsert("projects", Project(id="1"))
        store.push_notification(Notification(id="a", recipient_id="1", message="m"))
        store.clear()
        assert store.projects == []
        assert store.notifications == []


class TestEffectDispatcher:
    def _dispatcher(self, store, gateway=None, actor=None):
        actor = actor or TeamMember(id="1", name="ann")
        return EffectDispatcher(store, gateway or MagicMock(), lambda: actor, clock=lambda: NOW)

    def test_notify_pushes_and_calls_listener_for_current_user(self, store):
        d = self._dispatcher(store)
        received = []
        d.on_notification(received.append)
        d.dispatch([Notify("1", "hello", "project:4"), Notify("2", "other")])
        assert [n.message for n in store.notifications] == ["other", "hello"]
        assert [n.message for n in received] == ["hello"]
        assert store.notifications[1].created_at == NOW.isoformat()

    def test_notify_without_recipient_is_skipped(self, store):
        self._dispatcher(store).dispatch([Notify(None, "nobody")])
        assert store.notifications == []

    def test_audit_writes_through_gateway(self, store):
        gateway = MagicMock()
        gateway.add_audit_log.return_value = {
            "id": 10, "user_id": 1, "action": "Create Project", "entity_id": "4",
            "timestamp": NOW.isoformat(), "details": "d",
        }
        self._dispatcher(store, gateway).dispatch([Audit("Create Project", "d", "4")])
        sent = gateway.add_audit_log.call_args.args[0]
        assert sent["user_id"] == "1"
        assert sent["entity_id"] == "4"
        assert store.audit_logs[0].id == "10"

    def test_audit_failure_is_swallowed(self, store):
        gateway = MagicMock()
        gateway.add_audit_log.side_effect = RemoteCallError("down", 503)
        self._dispatcher(store, gateway).dispatch([Audit("Delete Task", "x")])
        assert store.audit_logs == []

    def test_audit_skipped_without_actor(self, store):
        gateway = MagicMock()
        d = EffectDispatcher(store, gateway, lambda: None, clock=lambda: NOW)
        d.dispatch([Audit("Delete Task", "x")])
        gateway.add_audit_log.assert_not_called()
