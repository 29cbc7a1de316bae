"""
Project work timer.

The timer is derived from a project's ``status`` and ``timer_start_time``:

    Idle       not started, no running session
    Running    ``timer_start_time`` set; ``since`` is when the session began
    Held       started, no running session (paused)
    Completed  the project is in a completed status

``plan_transition`` turns a user action into the field updates to send;
elapsed time of a running session is added to ``used_hours`` on hold and
end. Transitions are lenient: hold or end without a running session add
nothing, start/resume always open a new session.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pulse.sync.entities import Project, ProjectStatus
from pulse.utils.helpers import parse_timestamp

_COMPLETED_STATUSES = (
    ProjectStatus.COMPLETED,
    ProjectStatus.COMPLETED_BLOCKED,
    ProjectStatus.COMPLETED_NOT_SATISFIED,
)


class TimerAction(str, Enum):
    START = "start"
    RESUME = "resume"
    HOLD = "hold"
    END = "end"


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Running:
    since: datetime


@dataclass(frozen=True)
class Held:
    pass


@dataclass(frozen=True)
class Completed:
    pass


TimerState = Idle | Running | Held | Completed


def timer_state(project: Project) -> TimerState:
    since = parse_timestamp(project.timer_start_time)
    if since is not None:
        return Running(since)
    if project.status in _COMPLETED_STATUSES:
        return Completed()
    if project.status == ProjectStatus.NOT_STARTED:
        return Idle()
    return Held()


def elapsed_hours(since: datetime, now: datetime) -> float:
    """Hours between *since* and *now*; a start in the future counts as 0."""
    seconds = (parse_timestamp(now) - parse_timestamp(since)).total_seconds()
    return max(0.0, seconds) / 3600.0


def plan_transition(project: Project, action, now: datetime) -> dict:
    """Field updates for applying *action* to *project* at *now*.

    Raises:
        ValueError: *action* is not a timer action.
    """
    action = TimerAction(action)
    now = parse_timestamp(now)
    stamp = now.isoformat()

    if action in (TimerAction.START, TimerAction.RESUME):
        return {"status": ProjectStatus.STARTED.value, "timer_start_time": stamp}

    state = timer_state(project)
    used = max(0.0, project.used_hours or 0.0)
    if isinstance(state, Running):
        used += elapsed_hours(state.since, now)

    updates = {"timer_start_time": None, "used_hours": used}
    if action == TimerAction.HOLD:
        updates["status"] = ProjectStatus.STARTED.value
    else:
        updates["status"] = ProjectStatus.COMPLETED.value
        updates["completed_at"] = stamp
    return updates
