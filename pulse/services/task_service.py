"""
Task service: tasks, risks and issues.

Functions flush; the calling blueprint commits.
"""

import logging
from datetime import datetime, timezone

from pulse.core.exceptions import ValidationError
from pulse.models import db
from pulse.models.project import Project
from pulse.models.task import TASK_TYPES, Task
from pulse.services.payload import apply_payload

logger = logging.getLogger(__name__)

TASK_STATUSES = (
    "01.Task not started",
    "02.Task is started",
    "02a.On Hold",
    "02b.Blocked",
    "03.User - Testing",
    "04.Update",
    "05.Completed",
)

TASK_FIELDS = {
    "title": "str",
    "description": "text",
    "type": "str",
    "project_id": "int",
    "status": "str",
    "priority": "str",
    "severity": "str",
    "deadline": "datetime",
    "assignee_id": "int",
    "status_reason": "text",
    "difficulty": "float",
    "time_spent": "float",
    "time_saved": "float",
    "completion_reference": "text",
    "completed_at": "datetime",
    "last_updated": "datetime",
}


def _validate(task):
    if not (task.title or "").strip():
        raise ValidationError("title is required", {"title": "required"})
    if task.type not in TASK_TYPES:
        raise ValidationError(f"Unknown task type: {task.type!r}", {"type": task.type})
    if task.status not in TASK_STATUSES:
        raise ValidationError(f"Unknown task status: {task.status!r}", {"status": task.status})
    project = db.session.get(Project, task.project_id) if task.project_id else None
    if project is None or project.is_deleted:
        raise ValidationError("Project not found", {"project_id": task.project_id})


def create_task(data):
    task = Task(type="task", status="01.Task not started", priority="Medium")
    apply_payload(task, data, TASK_FIELDS)
    _validate(task)
    task.last_updated = task.last_updated or datetime.now(timezone.utc)
    db.session.add(task)
    db.session.flush()
    logger.info("%s %s created", task.type.capitalize(), task.id,
                extra={"task_id": task.id, "project_id": task.project_id, "action": "create"})
    return task


def update_task(task, data):
    apply_payload(task, data, TASK_FIELDS)
    _validate(task)
    if "last_updated" not in data and "lastUpdated" not in data:
        task.last_updated = datetime.now(timezone.utc)
    db.session.flush()
    return task


def delete_task(task):
    task.soft_delete()
    db.session.flush()
    logger.info("Task %s deleted", task.id, extra={"task_id": task.id, "action": "delete"})
