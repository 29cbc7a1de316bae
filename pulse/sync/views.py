"""
Derived views over the domain store.

Pure functions of store contents (and ``now`` where time matters); they
are recomputed on read and never write back.

    executive_summary      dashboard headline numbers and RAG distribution
    classify_rag           red / yellow / green health of one project
    compute_parent_status  status a parent should take from its children
    project_progress       percentage complete of one project
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pulse.sync.entities import Project, ProjectStatus, Task, TaskStatus, TaskType
from pulse.utils.helpers import parse_timestamp

logger = logging.getLogger(__name__)


class Rag(str, Enum):
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"


# Static dashboard trend figures; not derived from data.
KEY_TRENDS = {
    "on_time_delivery_percent": 85,
    "hours_utilization_percent": 78,
    "issue_resolution_time_days": 4.2,
}


@dataclass
class ExecutiveSummary:
    total_projects: int
    parent_projects: int
    child_projects: int
    total_allocated_hours: float
    open_issues: int
    open_blockers: int
    team_members: int
    open_issue_projects: frozenset[str]
    rag_distribution: dict[str, int] = field(default_factory=dict)
    key_trends: dict = field(default_factory=lambda: dict(KEY_TRENDS))

    def to_dict(self) -> dict:
        return {
            "total_projects": {
                "total": self.total_projects,
                "parent": self.parent_projects,
                "children": self.child_projects,
            },
            "total_allocated_hours": self.total_allocated_hours,
            "open_issues": self.open_issues,
            "open_blockers": self.open_blockers,
            "team_members": self.team_members,
            "rag_distribution": dict(self.rag_distribution),
            "key_trends": dict(self.key_trends),
        }


def _is_open(task: Task) -> bool:
    return task.status != TaskStatus.COMPLETED


def _is_overdue(task: Task, now: datetime) -> bool:
    deadline = parse_timestamp(task.deadline)
    return deadline is not None and deadline < now and _is_open(task)


def classify_rag(project: Project, tasks: Iterable[Task], now: datetime) -> Rag:
    """Red if any of the project's incomplete tasks is past its deadline;
    yellow if the project is in User - Testing or Update; green otherwise.

    *tasks* may hold tasks of other projects; they are ignored.
    """
    now = parse_timestamp(now)
    for task in tasks:
        if task.project_id == project.id and _is_overdue(task, now):
            return Rag.RED
    if project.status in (ProjectStatus.USER_TESTING, ProjectStatus.UPDATE):
        return Rag.YELLOW
    return Rag.GREEN


def executive_summary(projects, tasks, members, now: datetime) -> ExecutiveSummary:
    projects = list(projects)
    tasks = list(tasks)
    now = parse_timestamp(now)

    open_issue_projects = frozenset(
        t.project_id for t in tasks if t.type == TaskType.ISSUE and _is_open(t) and t.project_id
    )
    open_issues = sum(1 for t in tasks if t.type == TaskType.ISSUE and _is_open(t))
    open_blockers = sum(1 for t in tasks if t.status == TaskStatus.BLOCKED)
    allocated = sum(p.allocated_hours for p in projects if p.id not in open_issue_projects)

    tasks_by_project: dict[str, list[Task]] = {}
    for t in tasks:
        tasks_by_project.setdefault(t.project_id, []).append(t)

    rag = {Rag.GREEN.value: 0, Rag.YELLOW.value: 0, Rag.RED.value: 0}
    for p in projects:
        rag[classify_rag(p, tasks_by_project.get(p.id, ()), now).value] += 1

    parents = sum(1 for p in projects if not p.parent_id)
    return ExecutiveSummary(
        total_projects=len(projects),
        parent_projects=parents,
        child_projects=len(projects) - parents,
        total_allocated_hours=allocated,
        open_issues=open_issues,
        open_blockers=open_blockers,
        team_members=len(list(members)),
        open_issue_projects=open_issue_projects,
        rag_distribution=rag,
    )


def compute_parent_status(children: Iterable[Project]) -> str:
    """Completed if every child is Completed, Started if any child has
    left Not started, otherwise Not started."""
    children = list(children)
    if children and all(c.status == ProjectStatus.COMPLETED for c in children):
        return ProjectStatus.COMPLETED.value
    if any(c.status != ProjectStatus.NOT_STARTED for c in children):
        return ProjectStatus.STARTED.value
    return ProjectStatus.NOT_STARTED.value


def project_progress(project: Project, projects: Iterable[Project], tasks: Iterable[Task]) -> int:
    """Percentage complete, 0-100.

    Completed -> 100, Not started -> 0. A parent's progress is the summed
    weight of its completed children; a leaf's is the share of its tasks
    that are completed.
    """
    if project.status == ProjectStatus.COMPLETED:
        return 100
    if project.status == ProjectStatus.NOT_STARTED:
        return 0
    children = [p for p in projects if p.parent_id == project.id]
    if children:
        progress = sum(c.weight or 0 for c in children if c.status == ProjectStatus.COMPLETED)
    else:
        own = [t for t in tasks if t.project_id == project.id]
        done = sum(1 for t in own if t.status == TaskStatus.COMPLETED)
        progress = round(100 * done / len(own)) if own else 0
    return int(min(progress, 100))
