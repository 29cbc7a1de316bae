"""
Project service: create, update and cascading soft delete.

Rules:
  - The project lead column is ``owner_id``; ``lead_id``/``leadId`` are
    accepted as aliases.
  - ``used_hours`` is never stored below zero.
  - Deleting a project soft-deletes every descendant and the tasks of all
    of them, and reports the affected project ids.
  - Functions flush; the calling blueprint commits.
"""

import logging
from datetime import datetime, timezone

from pulse.core.exceptions import ValidationError
from pulse.models import db
from pulse.models.project import Project
from pulse.models.task import Task
from pulse.services.payload import apply_payload

logger = logging.getLogger(__name__)

PROJECT_STATUSES = (
    "Not started",
    "Started",
    "User - Testing",
    "Update",
    "Blocked",
    "Completed",
    "Completed Blocked",
    "Completed, Not Satisfied",
)

PROJECT_FREQUENCIES = (
    "Daily",
    "Weekly",
    "Twice a month",
    "3 weeks once",
    "Monthly",
    "Specific Dates",
)

PROJECT_FIELDS = {
    "name": "str",
    "description": "text",
    "status": "str",
    "owner_id": "int",
    "team_id": "int",
    "parent_id": "int",
    "weight": "float",
    "allocated_hours": "float",
    "used_hours": "float",
    "additional_hours": "float",
    "saved_hours": "float",
    "expected_saved_hours": "float",
    "frequency": "str",
    "frequency_detail": "text",
    "timer_start_time": "naive_utc",
    "completed_at": "datetime",
    "end_date": "date",
    "users": "json",
    "tools_used": "json",
    "last_used_by": "json",
    "end_user_feedback": "json",
    "latest_comments": "json",
}

PROJECT_ALIASES = {
    "leadId": "owner_id",
    "lead_id": "owner_id",
    "ownerId": "owner_id",
    "milestoneDate": "end_date",
}


def _validate(project):
    if not (project.name or "").strip():
        raise ValidationError("name is required", {"name": "required"})
    if project.status not in PROJECT_STATUSES:
        raise ValidationError(f"Unknown project status: {project.status!r}", {"status": project.status})
    if project.frequency and project.frequency not in PROJECT_FREQUENCIES:
        raise ValidationError(f"Unknown frequency: {project.frequency!r}", {"frequency": project.frequency})
    if project.weight is not None and not 1 <= project.weight <= 100:
        raise ValidationError("weight must be between 1 and 100", {"weight": project.weight})
    if project.used_hours is None or project.used_hours < 0:
        project.used_hours = 0


def create_project(data):
    """Create a project from a request body.

    Raises:
        ValidationError: missing name, unknown status, or a parent that does
            not exist.
    """
    project = Project(status="Not started", used_hours=0, allocated_hours=0, additional_hours=0)
    apply_payload(project, data, PROJECT_FIELDS, aliases=PROJECT_ALIASES)
    if project.parent_id is not None:
        parent = db.session.get(Project, project.parent_id)
        if parent is None or parent.is_deleted:
            raise ValidationError("Parent project not found", {"parent_id": project.parent_id})
    _validate(project)
    db.session.add(project)
    db.session.flush()
    logger.info("Project created", extra={"project_id": project.id, "action": "create"})
    return project


def update_project(project, data):
    """Apply a partial update and return the project."""
    changed = apply_payload(project, data, PROJECT_FIELDS, aliases=PROJECT_ALIASES)
    if "parent_id" in changed and project.parent_id == project.id:
        raise ValidationError("A project cannot be its own parent", {"parent_id": project.parent_id})
    _validate(project)
    db.session.flush()
    logger.debug("Project %s updated: %s", project.id, ", ".join(changed) or "-")
    return project


def _descendant_ids(root_id):
    """Breadth-first ids of *root_id* and every active descendant."""
    ids = [root_id]
    frontier = [root_id]
    while frontier:
        children = (
            Project.query_active()
            .filter(Project.parent_id.in_(frontier))
            .with_entities(Project.id)
            .all()
        )
        frontier = [row.id for row in children if row.id not in ids]
        ids.extend(frontier)
    return ids


def delete_project(project):
    """Soft-delete *project*, its descendants and their tasks.

    Returns:
        List of deleted project ids, the requested project first.
    """
    now = datetime.now(timezone.utc)
    ids = _descendant_ids(project.id)
    for p in Project.query.filter(Project.id.in_(ids)).all():
        p.soft_delete(at=now)
    tasks = Task.query_active().filter(Task.project_id.in_(ids)).all()
    for t in tasks:
        t.soft_delete(at=now)
    db.session.flush()
    logger.info(
        "Project %s deleted with %d descendant(s) and %d task(s)",
        project.id, len(ids) - 1, len(tasks),
        extra={"project_id": project.id, "action": "delete"},
    )
    return ids
