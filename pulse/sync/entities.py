"""
Canonical client-side entities.

Every identifier is a ``str`` (or None when absent). Status-like fields are
stored as plain strings and compared against the ``(str, Enum)`` members
below, so values the client does not know yet still round-trip.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


# ═════════════════════════════════════════════════════════════════════════════
# Enums
# ═════════════════════════════════════════════════════════════════════════════

class ProjectStatus(str, Enum):
    NOT_STARTED = "Not started"
    STARTED = "Started"
    USER_TESTING = "User - Testing"
    UPDATE = "Update"
    BLOCKED = "Blocked"
    COMPLETED = "Completed"
    COMPLETED_BLOCKED = "Completed Blocked"
    COMPLETED_NOT_SATISFIED = "Completed, Not Satisfied"


class TaskStatus(str, Enum):
    NOT_STARTED = "01.Task not started"
    STARTED = "02.Task is started"
    ON_HOLD = "02a.On Hold"
    BLOCKED = "02b.Blocked"
    USER_TESTING = "03.User - Testing"
    UPDATE = "04.Update"
    COMPLETED = "05.Completed"


class TaskType(str, Enum):
    TASK = "task"
    RISK = "risk"
    ISSUE = "issue"


class ProjectFrequency(str, Enum):
    DAILY = "Daily"
    WEEKLY = "Weekly"
    TWICE_A_MONTH = "Twice a month"
    THREE_WEEKS_ONCE = "3 weeks once"
    MONTHLY = "Monthly"
    SPECIFIC_DATES = "Specific Dates"


class ToDoFrequency(str, Enum):
    ONCE = "Once"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"


class Role(str, Enum):
    """Management hierarchy, highest authority first."""
    MD = "MD"
    DIRECTOR = "Director"
    ADMIN_MANAGER = "Admin Manager"
    OPERATION_MANAGER = "Operation Manager"
    SUPER_LEADER = "Super Leader"
    TEAM_LEADER = "Team Leader"
    SUB_TEAM_LEADER = "Sub-team Leader"
    STAFF = "Staff"


ROLE_ORDER = list(Role)

ADMIN_ROLES = frozenset(r.value for r in (
    Role.MD, Role.DIRECTOR, Role.ADMIN_MANAGER, Role.OPERATION_MANAGER, Role.SUPER_LEADER,
))

# Predefined reasons offered when a risk is raised; anything else is "Other".
BLOCKED_REASONS = (
    "Waiting for user information",
    "Waiting for API",
    "Task clarity issue",
)


def role_rank(role) -> int:
    """Position in the hierarchy (0 = MD); unknown roles rank below Staff."""
    try:
        return ROLE_ORDER.index(Role(role))
    except ValueError:
        return len(ROLE_ORDER)


def is_admin(role) -> bool:
    value = role.value if isinstance(role, Role) else role
    return value in ADMIN_ROLES


# ═════════════════════════════════════════════════════════════════════════════
# Entities
# ═════════════════════════════════════════════════════════════════════════════

@dataclass
class ProjectUser:
    type: str
    id: str


@dataclass
class UsageEntry:
    """One logged use of a completed project."""
    user_id: str | None
    date: str | None
    saved_hours: float | None = None


@dataclass
class Project:
    id: str
    name: str = ""
    description: str = ""
    status: str = ProjectStatus.NOT_STARTED.value
    lead_id: str | None = None
    team_id: str | None = None
    parent_id: str | None = None
    weight: float | None = None
    allocated_hours: float = 0.0
    used_hours: float = 0.0
    additional_hours: float = 0.0
    saved_hours: float | None = None
    expected_saved_hours: float | None = None
    frequency: str | None = None
    frequency_detail: str | None = None
    timer_start_time: str | None = None
    completed_at: str | None = None
    end_date: str | None = None
    users: list[ProjectUser] = field(default_factory=list)
    tools_used: list[str] = field(default_factory=list)
    last_used_by: list[UsageEntry] = field(default_factory=list)
    end_user_feedback: dict | None = None
    latest_comments: dict | None = None


@dataclass
class Task:
    id: str
    title: str = ""
    description: str = ""
    type: str = TaskType.TASK.value
    project_id: str | None = None
    status: str = TaskStatus.NOT_STARTED.value
    priority: str = "Medium"
    severity: str | None = None
    deadline: str | None = None
    assignee_id: str | None = None
    status_reason: str | None = None
    difficulty: float = 0.0
    time_spent: float = 0.0
    time_saved: float = 0.0
    completion_reference: str | None = None
    completed_at: str | None = None
    last_updated: str | None = None


@dataclass
class ToDo:
    id: str
    title: str = ""
    owner_id: str | None = None
    due_date: str | None = None
    due_time: str | None = None
    frequency: str = ToDoFrequency.ONCE.value
    is_complete: bool = False
    last_completed_at: str | None = None
    created_at: str | None = None


@dataclass
class TeamMember:
    id: str
    name: str = ""
    role: str = Role.STAFF.value
    team_id: str | None = None
    sub_team_leader_id: str | None = None
    office_location: str | None = None
    avatar_url: str = ""
    title: str = ""


@dataclass
class Team:
    id: str
    name: str = ""
    description: str = ""


@dataclass
class Tool:
    id: str
    name: str = ""
    status: str = "Active"


@dataclass
class Leave:
    id: str
    member_id: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    reason: str | None = None


@dataclass
class Notification:
    """Client-only; never sent to the backend."""
    id: str
    recipient_id: str | None
    message: str
    link: str | None = None
    is_read: bool = False
    created_at: str | None = None


@dataclass
class AuditLog:
    id: str
    user_id: str | None = None
    action: str = ""
    entity_type: str = "project"
    entity_id: str | None = None
    timestamp: str | None = None
    details: str = ""


@dataclass
class ProjectPhase:
    id: str
    name: str = ""
    description: str = ""
    status: str = "Active"


@dataclass
class Department:
    id: str
    name: str = ""
    description: str = ""
    status: str = "Active"


@dataclass
class RiskLevelSetting:
    id: str
    level: str = ""
    description: str = ""
    color: str = ""
    status: str = "Active"


@dataclass
class SystemConfiguration:
    organization_name: str = ""
    notification_email: str = ""
    default_currency: str = ""
    auto_escalation_days: int = 0
    fiscal_year_start: str = ""
    backup_frequency: str = ""
