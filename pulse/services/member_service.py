"""
Member service: users, teams, login and the per-member performance report.

Functions flush; the calling blueprint commits.
"""

import logging
from datetime import timezone

from pulse.core.exceptions import ConflictError, ValidationError
from pulse.models import db
from pulse.models.member import ROLES, Team, User
from pulse.models.project import Project
from pulse.models.task import Task
from pulse.services.payload import apply_payload

logger = logging.getLogger(__name__)

USER_FIELDS = {
    "name": "str",
    "role": "str",
    "title": "str",
    "team_id": "int",
    "sub_team_leader_id": "int",
    "office_location": "str",
    "avatar_url": "str",
}

TEAM_FIELDS = {"name": "str", "description": "text"}


# ── Users ────────────────────────────────────────────────────────────────────

def _validate_user(user):
    if not (user.name or "").strip():
        raise ValidationError("name is required", {"name": "required"})
    if user.role not in ROLES:
        raise ValidationError(f"Unknown role: {user.role!r}", {"role": user.role})
    if user.role != "Staff":
        user.sub_team_leader_id = None
    duplicate = User.query.filter(User.name == user.name, User.id != user.id).first()
    if duplicate is not None:
        raise ConflictError("User", "name", user.name)


def create_user(data):
    user = User(role="Staff")
    apply_payload(user, data, USER_FIELDS)
    _validate_user(user)
    if data.get("password"):
        user.set_password(data["password"])
    db.session.add(user)
    db.session.flush()
    logger.info("User %s created with role %s", user.id, user.role,
                extra={"user_id": user.id, "action": "create"})
    return user


def update_user(user, data):
    apply_payload(user, data, USER_FIELDS)
    _validate_user(user)
    if data.get("password"):
        user.set_password(data["password"])
    db.session.flush()
    return user


def authenticate(username, password):
    """Return the user whose name and password match, else None."""
    if not username or not password:
        return None
    user = User.query.filter_by(name=username.strip()).first()
    if user is None or not user.check_password(password):
        logger.warning("Failed login for %r", username)
        return None
    logger.info("User %s logged in", user.id, extra={"user_id": user.id, "action": "login"})
    return user


# ── Teams ────────────────────────────────────────────────────────────────────

def save_team(data, team=None):
    team = team or Team()
    apply_payload(team, data, TEAM_FIELDS)
    if not (team.name or "").strip():
        raise ValidationError("name is required", {"name": "required"})
    if team.id is None:
        db.session.add(team)
    db.session.flush()
    return team


# ── Performance ──────────────────────────────────────────────────────────────

def _pct(part, whole):
    return round(100.0 * part / whole, 1) if whole else 0.0


def _rating(score):
    if score >= 85:
        return "Excellent"
    if score >= 70:
        return "Good"
    if score >= 50:
        return "Average"
    return "Needs Improvement"


def _aware(dt):
    if dt is None:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def member_performance(user):
    """
    Aggregate performance for one member.

    Projects counted are those the member leads; tasks are those assigned
    to the member. Every ratio is 0 when its population is empty.
    """
    projects = Project.query_active().filter(Project.owner_id == user.id).all()
    tasks = Task.query_active().filter(Task.assignee_id == user.id).all()

    completed_projects = [p for p in projects if p.status == "Completed"]
    success_rate = _pct(len(completed_projects), len(projects))

    completed_tasks = [t for t in tasks if t.status == "05.Completed"]
    with_deadline = [t for t in completed_tasks if t.deadline and t.completed_at]
    on_time = [t for t in with_deadline if _aware(t.completed_at) <= _aware(t.deadline)]
    on_time_rate = _pct(len(on_time), len(with_deadline))

    ratings = [
        (p.end_user_feedback or {}).get("rating")
        for p in projects
        if isinstance(p.end_user_feedback, dict)
    ]
    ratings = [float(r) for r in ratings if isinstance(r, (int, float))]
    satisfaction = round(sum(ratings) / len(ratings), 1) if ratings else 0.0

    issue_days = [
        (_aware(t.completed_at) - _aware(t.created_at)).total_seconds() / 86400
        for t in completed_tasks
        if t.type == "issue" and t.completed_at and t.created_at
    ]
    issue_resolution = round(sum(issue_days) / len(issue_days), 1) if issue_days else 0.0

    allocated = sum((p.allocated_hours or 0) + (p.additional_hours or 0) for p in projects)
    used = sum(p.used_hours or 0 for p in projects)
    utilization = min(100.0, _pct(used, allocated))

    risks = [t for t in tasks if t.type == "risk"]
    risk_score = _pct(len([t for t in risks if t.status == "05.Completed"]), len(risks))
    task_rate = _pct(len(completed_tasks), len(tasks))

    durations = [
        (_aware(p.completed_at) - _aware(p.created_at)).days / 30.0
        for p in completed_projects
        if p.completed_at and p.created_at
    ]
    avg_duration = round(sum(durations) / len(durations), 1) if durations else 0.0

    score = round((success_rate + on_time_rate + utilization + task_rate) / 4, 1)
    return {
        "member_id": user.id,
        "project_success_rate": {"value": success_rate, "change": ""},
        "on_time_delivery": {"value": on_time_rate, "change": ""},
        "stakeholder_satisfaction": {"value": satisfaction, "change": ""},
        "efficiency_metrics": {
            "issue_resolution_time_days": issue_resolution,
            "resource_utilization": utilization,
            "change_request_efficiency": task_rate,
            "risk_mitigation_score": risk_score,
        },
        "overall_performance": {"score": score, "rating": _rating(score)},
        "team_satisfaction": satisfaction,
        "avg_project_duration_months": avg_duration,
        "projects_led": len(projects),
        "tasks_assigned": len(tasks),
    }
