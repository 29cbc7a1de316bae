"""
Schedule service: personal to-dos and member leave.

Functions flush; the calling blueprint commits.
"""

import logging

from pulse.core.exceptions import ValidationError
from pulse.models import db
from pulse.models.leave import Leave
from pulse.models.member import User
from pulse.models.todo import ToDo
from pulse.services.payload import apply_payload

logger = logging.getLogger(__name__)

TODO_FREQUENCIES = ("Once", "Daily", "Weekly", "Monthly")

TODO_FIELDS = {
    "title": "str",
    "owner_id": "int",
    "due_date": "str",
    "due_time": "str",
    "frequency": "str",
    "is_complete": "bool",
    "last_completed_at": "datetime",
}

LEAVE_FIELDS = {
    "member_id": "int",
    "start_date": "datetime",
    "end_date": "datetime",
    "reason": "text",
}


# ── To-dos ───────────────────────────────────────────────────────────────────

def _validate_todo(todo):
    if not (todo.title or "").strip():
        raise ValidationError("title is required", {"title": "required"})
    if todo.frequency not in TODO_FREQUENCIES:
        raise ValidationError(f"Unknown frequency: {todo.frequency!r}", {"frequency": todo.frequency})
    if todo.owner_id is None or db.session.get(User, todo.owner_id) is None:
        raise ValidationError("Owner not found", {"owner_id": todo.owner_id})


def create_todo(data):
    todo = ToDo(frequency="Once", is_complete=False)
    apply_payload(todo, data, TODO_FIELDS)
    _validate_todo(todo)
    db.session.add(todo)
    db.session.flush()
    return todo


def update_todo(todo, data):
    apply_payload(todo, data, TODO_FIELDS)
    _validate_todo(todo)
    db.session.flush()
    return todo


# ── Leave ────────────────────────────────────────────────────────────────────

def create_leave(data):
    leave = Leave()
    apply_payload(leave, data, LEAVE_FIELDS)
    if leave.member_id is None or db.session.get(User, leave.member_id) is None:
        raise ValidationError("Member not found", {"member_id": leave.member_id})
    if leave.start_date is None or leave.end_date is None:
        raise ValidationError("start_date and end_date are required")
    if leave.end_date < leave.start_date:
        raise ValidationError("end_date must not be before start_date")
    db.session.add(leave)
    db.session.flush()
    logger.info("Leave %s recorded for member %s", leave.id, leave.member_id,
                extra={"user_id": leave.member_id, "action": "create"})
    return leave
