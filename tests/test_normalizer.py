"""
Normalizer tests: server payloads -> canonical entities.
"""

import pytest

from pulse.sync.entities import ProjectUser
from pulse.sync.normalizer import (
    normalize_audit_log,
    normalize_leave,
    normalize_many,
    normalize_member,
    normalize_notification,
    normalize_project,
    normalize_system_configuration,
    normalize_task,
    normalize_todo,
)


RAW_PROJECT = {
    "id": 7,
    "name": "Invoice bot",
    "owner_id": 3,
    "teamId": 2,
    "usedHours": "-2",
    "allocated_hours": "12.5",
    "saved_hours": None,
    "weight": "",
    "users": '[{"type": "user", "id": 5}]',
    "tools_used": [1, 2],
    "last_used_by": [{"user_id": 5, "date": "2024-05-01T10:00:00+00:00", "saved_hours": "1.5"}],
    "end_user_feedback": '{"rating": 4}',
}


class TestNormalizeProject:
    def test_aliases_and_ids(self):
        p = normalize_project(RAW_PROJECT)
        assert p.id == "7"
        assert p.lead_id == "3"
        assert p.team_id == "2"
        assert p.users == [ProjectUser(type="user", id="5")]
        assert p.tools_used == ["1", "2"]
        assert p.end_user_feedback == {"rating": 4}

    def test_numbers(self):
        p = normalize_project(RAW_PROJECT)
        assert p.used_hours == 0.0
        assert p.allocated_hours == 12.5
        assert p.saved_hours is None
        assert p.weight is None
        assert p.last_used_by[0].saved_hours == 1.5

    def test_idempotent(self):
        once = normalize_project(RAW_PROJECT)
        assert normalize_project(once) == once

    def test_malformed_numbers_become_zero(self):
        p = normalize_project({"id": 1, "allocated_hours": "lots", "expected_saved_hours": "?"})
        assert p.allocated_hours == 0.0
        assert p.expected_saved_hours == 0.0

    def test_huge_integers_become_zero(self):
        p = normalize_project({"id": 1, "allocated_hours": 10**400, "used_hours": -10**400})
        assert p.allocated_hours == 0.0
        assert p.used_hours == 0.0

    def test_explicit_lead_wins_over_owner_alias(self):
        p = normalize_project({"id": 1, "lead_id": "9", "owner_id": "3"})
        assert p.lead_id == "9"

    def test_defaults(self):
        p = normalize_project({"id": 1})
        assert p.status == "Not started"
        assert p.users == []
        assert p.end_user_feedback is None


class TestOtherEntities:
    def test_task_type_lowercased(self):
        t = normalize_task({"id": 1, "type": "Risk", "projectId": 4, "timeSpent": "2"})
        assert t.type == "risk"
        assert t.project_id == "4"
        assert t.time_spent == 2.0
        assert normalize_task(t) == t

    def test_todo_bool_and_frequency(self):
        todo = normalize_todo({"id": 2, "is_complete": "true", "frequency": ""})
        assert todo.is_complete is True
        assert todo.frequency == "Once"

    def test_member_defaults_to_staff(self):
        m = normalize_member({"id": 3, "name": "ann", "role": None})
        assert m.role == "Staff"

    def test_leave_dates_in_utc(self):
        lv = normalize_leave({"id": 1, "user_id": 4, "start_date": "2024-06-01T02:00:00+02:00", "end_date": "bad"})
        assert lv.member_id == "4"
        assert lv.start_date == "2024-06-01T00:00:00+00:00"
        assert lv.end_date is None

    def test_notification_alias(self):
        n = normalize_notification({"id": "n1", "user_id": 4, "message": "hi"})
        assert n.recipient_id == "4"
        assert n.is_read is False

    def test_audit_entity_id_string(self):
        a = normalize_audit_log({"id": 1, "entity_id": 12.0, "user_id": None})
        assert a.entity_id == "12"
        assert a.user_id is None

    def test_system_configuration(self):
        cfg = normalize_system_configuration({"organizationName": "Acme", "auto_escalation_days": "4"})
        assert cfg.organization_name == "Acme"
        assert cfg.auto_escalation_days == 4


@pytest.mark.parametrize("raw", [None, "text", 42, []])
def test_non_mapping_yields_empty_entity(raw):
    p = normalize_project(raw)
    assert p.id is None
    assert p.name == ""


def test_normalize_many_skips_non_objects():
    rows = normalize_many("teams", [{"id": 1, "name": "Core"}, "junk", None])
    assert [t.id for t in rows] == ["1"]
