"""
Entity normalizer: raw server payloads -> canonical entities.

Every ``normalize_<entity>`` function is total over mappings: it never
raises, coerces identifiers to ``str``, parses numbers defensively and
resolves the field-name aliases the backend (or older clients) use. Each
accepts either a mapping or an already-normalized entity, and applying it
twice gives the same result as applying it once.

Usage:
    from pulse.sync.normalizer import normalize_project
    project = normalize_project({"id": 7, "owner_id": 3, "usedHours": "-2"})
    project.lead_id, project.used_hours      # -> ("3", 0.0)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from enum import Enum

from pulse.sync.entities import (
    AuditLog,
    Department,
    Leave,
    Notification,
    Project,
    ProjectPhase,
    ProjectStatus,
    ProjectUser,
    RiskLevelSetting,
    SystemConfiguration,
    Task,
    TaskStatus,
    TaskType,
    Team,
    TeamMember,
    ToDo,
    ToDoFrequency,
    Tool,
    UsageEntry,
)
from pulse.utils.helpers import canonical_keys, parse_timestamp, to_number

logger = logging.getLogger(__name__)

# Server / legacy spellings resolved before anything else reads the payload.
_PROJECT_ALIASES = {"owner_id": "lead_id", "ownerId": "lead_id", "leadId": "lead_id"}
_LEAVE_ALIASES = {"user_id": "member_id", "userId": "member_id"}
_NOTIFICATION_ALIASES = {"user_id": "recipient_id"}


# ── Primitive coercions ──────────────────────────────────────────────────────

def _as_mapping(raw, aliases=None) -> dict:
    if is_dataclass(raw) and not isinstance(raw, type):
        raw = asdict(raw)
    if not isinstance(raw, Mapping):
        return {}
    return canonical_keys(dict(raw), aliases)


def _id(value) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    try:
        text = str(value).strip()
    except ValueError:
        # int too large to render
        return None
    return text or None


def _num(value, default=0.0) -> float:
    return to_number(value, default)


def _opt_num(value) -> float | None:
    """None stays None; anything else is a number (malformed -> 0)."""
    if value is None or value == "":
        return None
    return to_number(value, 0.0)


def _text(value, default="") -> str:
    if value is None:
        return default
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _opt_text(value) -> str | None:
    if value is None or value == "":
        return None
    return _text(value)


def _bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


def _json_value(value):
    """Decode JSON text columns; pass decoded values through."""
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", "replace")
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return None
    return value


def _list(value) -> list:
    value = _json_value(value)
    return list(value) if isinstance(value, (list, tuple)) else []


def _dict_or_none(value) -> dict | None:
    value = _json_value(value)
    if is_dataclass(value) and not isinstance(value, type):
        value = asdict(value)
    return dict(value) if isinstance(value, Mapping) else None


def _utc_iso(value) -> str | None:
    dt = parse_timestamp(value)
    return dt.isoformat() if dt is not None else None


# ── Projects ─────────────────────────────────────────────────────────────────

def _project_user(item) -> ProjectUser | None:
    data = _as_mapping(item)
    if not data:
        return None
    return ProjectUser(type=_text(data.get("type"), "user") or "user", id=_id(data.get("id")))


def _usage_entry(item) -> UsageEntry | None:
    data = _as_mapping(item)
    if not data:
        return None
    return UsageEntry(
        user_id=_id(data.get("user_id")),
        date=_opt_text(data.get("date")),
        saved_hours=_opt_num(data.get("saved_hours")),
    )


def normalize_project(raw) -> Project:
    d = _as_mapping(raw, _PROJECT_ALIASES)
    users = [u for u in (_project_user(i) for i in _list(d.get("users"))) if u is not None]
    usage = [e for e in (_usage_entry(i) for i in _list(d.get("last_used_by"))) if e is not None]
    return Project(
        id=_id(d.get("id")),
        name=_text(d.get("name")),
        description=_text(d.get("description")),
        status=_text(d.get("status"), ProjectStatus.NOT_STARTED.value),
        lead_id=_id(d.get("lead_id")),
        team_id=_id(d.get("team_id")),
        parent_id=_id(d.get("parent_id")),
        weight=_opt_num(d.get("weight")),
        allocated_hours=_num(d.get("allocated_hours")),
        used_hours=max(0.0, _num(d.get("used_hours"))),
        additional_hours=_num(d.get("additional_hours")),
        saved_hours=_opt_num(d.get("saved_hours")),
        expected_saved_hours=_opt_num(d.get("expected_saved_hours")),
        frequency=_opt_text(d.get("frequency")),
        frequency_detail=_opt_text(d.get("frequency_detail")),
        timer_start_time=_opt_text(d.get("timer_start_time")),
        completed_at=_opt_text(d.get("completed_at")),
        end_date=_opt_text(d.get("end_date")),
        users=users,
        tools_used=[t for t in (_id(i) for i in _list(d.get("tools_used"))) if t is not None],
        last_used_by=usage,
        end_user_feedback=_dict_or_none(d.get("end_user_feedback")),
        latest_comments=_dict_or_none(d.get("latest_comments")),
    )


# ── Tasks ────────────────────────────────────────────────────────────────────

def normalize_task(raw) -> Task:
    d = _as_mapping(raw)
    task_type = _text(d.get("type"), TaskType.TASK.value).lower() or TaskType.TASK.value
    return Task(
        id=_id(d.get("id")),
        title=_text(d.get("title")),
        description=_text(d.get("description")),
        type=task_type,
        project_id=_id(d.get("project_id")),
        status=_text(d.get("status"), TaskStatus.NOT_STARTED.value),
        priority=_text(d.get("priority"), "Medium"),
        severity=_opt_text(d.get("severity")),
        deadline=_opt_text(d.get("deadline")),
        assignee_id=_id(d.get("assignee_id")),
        status_reason=_opt_text(d.get("status_reason")),
        difficulty=_num(d.get("difficulty")),
        time_spent=_num(d.get("time_spent")),
        time_saved=_num(d.get("time_saved")),
        completion_reference=_opt_text(d.get("completion_reference")),
        completed_at=_opt_text(d.get("completed_at")),
        last_updated=_opt_text(d.get("last_updated")),
    )


# ── To-dos, members, teams, tools, leave ─────────────────────────────────────

def normalize_todo(raw) -> ToDo:
    d = _as_mapping(raw)
    return ToDo(
        id=_id(d.get("id")),
        title=_text(d.get("title")),
        owner_id=_id(d.get("owner_id")),
        due_date=_opt_text(d.get("due_date")),
        due_time=_opt_text(d.get("due_time")),
        frequency=_text(d.get("frequency"), ToDoFrequency.ONCE.value) or ToDoFrequency.ONCE.value,
        is_complete=_bool(d.get("is_complete")),
        last_completed_at=_opt_text(d.get("last_completed_at")),
        created_at=_opt_text(d.get("created_at")),
    )


def normalize_member(raw) -> TeamMember:
    d = _as_mapping(raw)
    return TeamMember(
        id=_id(d.get("id")),
        name=_text(d.get("name")),
        role=_text(d.get("role"), "Staff") or "Staff",
        team_id=_id(d.get("team_id")),
        sub_team_leader_id=_id(d.get("sub_team_leader_id")),
        office_location=_opt_text(d.get("office_location")),
        avatar_url=_text(d.get("avatar_url")),
        title=_text(d.get("title")),
    )


def normalize_team(raw) -> Team:
    d = _as_mapping(raw)
    return Team(id=_id(d.get("id")), name=_text(d.get("name")), description=_text(d.get("description")))


def normalize_tool(raw) -> Tool:
    d = _as_mapping(raw)
    return Tool(id=_id(d.get("id")), name=_text(d.get("name")), status=_text(d.get("status"), "Active"))


def normalize_leave(raw) -> Leave:
    """Leave dates are normalized to UTC ISO timestamps (None if unparseable)."""
    d = _as_mapping(raw, _LEAVE_ALIASES)
    return Leave(
        id=_id(d.get("id")),
        member_id=_id(d.get("member_id")),
        start_date=_utc_iso(d.get("start_date")),
        end_date=_utc_iso(d.get("end_date")),
        reason=_opt_text(d.get("reason")),
    )


# ── Notifications and audit ──────────────────────────────────────────────────

def normalize_notification(raw) -> Notification:
    d = _as_mapping(raw, _NOTIFICATION_ALIASES)
    return Notification(
        id=_id(d.get("id")),
        recipient_id=_id(d.get("recipient_id")),
        message=_text(d.get("message")),
        link=_opt_text(d.get("link")),
        is_read=_bool(d.get("is_read")),
        created_at=_opt_text(d.get("created_at")),
    )


def normalize_audit_log(raw) -> AuditLog:
    d = _as_mapping(raw)
    return AuditLog(
        id=_id(d.get("id")),
        user_id=_id(d.get("user_id")),
        action=_text(d.get("action")),
        entity_type=_text(d.get("entity_type"), "project") or "project",
        entity_id=_id(d.get("entity_id")),
        timestamp=_opt_text(d.get("timestamp")),
        details=_text(d.get("details")),
    )


# ── Settings ─────────────────────────────────────────────────────────────────

def normalize_project_phase(raw) -> ProjectPhase:
    d = _as_mapping(raw)
    return ProjectPhase(
        id=_id(d.get("id")),
        name=_text(d.get("name")),
        description=_text(d.get("description")),
        status=_text(d.get("status"), "Active"),
    )


def normalize_department(raw) -> Department:
    d = _as_mapping(raw)
    return Department(
        id=_id(d.get("id")),
        name=_text(d.get("name")),
        description=_text(d.get("description")),
        status=_text(d.get("status"), "Active"),
    )


def normalize_risk_level(raw) -> RiskLevelSetting:
    d = _as_mapping(raw)
    return RiskLevelSetting(
        id=_id(d.get("id")),
        level=_text(d.get("level")),
        description=_text(d.get("description")),
        color=_text(d.get("color")),
        status=_text(d.get("status"), "Active"),
    )


def normalize_system_configuration(raw) -> SystemConfiguration:
    d = _as_mapping(raw)
    return SystemConfiguration(
        organization_name=_text(d.get("organization_name")),
        notification_email=_text(d.get("notification_email")),
        default_currency=_text(d.get("default_currency")),
        auto_escalation_days=int(_num(d.get("auto_escalation_days"))),
        fiscal_year_start=_text(d.get("fiscal_year_start")),
        backup_frequency=_text(d.get("backup_frequency")),
    )


# Store kind -> normalizer, used when hydrating lists.
NORMALIZERS = {
    "projects": normalize_project,
    "tasks": normalize_task,
    "todos": normalize_todo,
    "members": normalize_member,
    "teams": normalize_team,
    "tools": normalize_tool,
    "leave": normalize_leave,
    "audit_logs": normalize_audit_log,
    "notifications": normalize_notification,
    "project_phases": normalize_project_phase,
    "departments": normalize_department,
    "risk_levels": normalize_risk_level,
}


def normalize_many(kind: str, rows) -> list:
    """Normalize a list payload, skipping rows that are not mappings."""
    normalize = NORMALIZERS[kind]
    out = []
    for row in rows or []:
        if not isinstance(row, Mapping) and not is_dataclass(row):
            logger.warning("Skipping non-object %s row: %r", kind, row)
            continue
        out.append(normalize(row))
    return out
