"""
Project timer state and transition tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from pulse.sync.entities import Project
from pulse.sync.timer import Completed, Held, Idle, Running, plan_transition, timer_state

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def _apply(project, updates):
    for key, value in updates.items():
        setattr(project, key, value)
    return project


class TestTimerState:
    def test_states(self):
        assert timer_state(Project(id="1")) == Idle()
        assert timer_state(Project(id="1", status="Started")) == Held()
        assert timer_state(Project(id="1", status="Completed Blocked")) == Completed()
        running = timer_state(Project(id="1", status="Started", timer_start_time="2024-03-01 09:00:00"))
        assert running == Running(T0)


class TestPlanTransition:
    def test_start_stamps_now(self):
        updates = plan_transition(Project(id="1"), "start", T0)
        assert updates == {"status": "Started", "timer_start_time": T0.isoformat()}

    def test_two_sessions_accumulate(self):
        p = Project(id="1")
        _apply(p, plan_transition(p, "start", T0))
        _apply(p, plan_transition(p, "hold", T0 + timedelta(hours=2)))
        assert p.used_hours == pytest.approx(2.0)
        assert p.timer_start_time is None
        assert p.status == "Started"

        _apply(p, plan_transition(p, "resume", T0 + timedelta(hours=5)))
        _apply(p, plan_transition(p, "end", T0 + timedelta(hours=8)))
        assert p.used_hours == pytest.approx(5.0)
        assert p.status == "Completed"
        assert p.completed_at == (T0 + timedelta(hours=8)).isoformat()

    def test_hold_without_running_session_adds_nothing(self):
        p = Project(id="1", status="Started", used_hours=3)
        assert plan_transition(p, "hold", T0)["used_hours"] == 3

    def test_future_start_counts_as_zero(self):
        p = Project(id="1", status="Started", timer_start_time=(T0 + timedelta(hours=1)).isoformat())
        assert plan_transition(p, "end", T0)["used_hours"] == 0

    def test_server_space_stamp_accepted(self):
        p = Project(id="1", status="Started", timer_start_time="2024-03-01 09:00:00", used_hours=1)
        assert plan_transition(p, "hold", T0 + timedelta(minutes=30))["used_hours"] == pytest.approx(1.5)

    def test_unknown_action(self):
        with pytest.raises(ValueError):
            plan_transition(Project(id="1"), "pause", T0)
