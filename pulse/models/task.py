"""
Project Pulse
Task domain model.

A Task row is a plain task, a risk or an issue (``type``). Risks and issues
share the table so the dashboards can count them next to regular work.
"""

from datetime import datetime, timezone

from pulse.models import db
from pulse.models.soft_delete import SoftDeleteMixin
from pulse.utils.helpers import iso_utc

TASK_TYPES = ("task", "risk", "issue")


class Task(SoftDeleteMixin, db.Model):
    __tablename__ = "tasks"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    type = db.Column(db.String(10), nullable=False, default="task")
    status = db.Column(db.String(40), nullable=False, default="01.Task not started")
    priority = db.Column(db.String(20), default="Medium")
    severity = db.Column(db.String(20), nullable=True)
    deadline = db.Column(db.DateTime(timezone=True), nullable=True)
    assignee_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    status_reason = db.Column(db.Text, nullable=True)
    difficulty = db.Column(db.Float, default=0)
    time_spent = db.Column(db.Float, default=0)
    time_saved = db.Column(db.Float, default=0)
    completion_reference = db.Column(db.Text, nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_updated = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "description": self.description or "",
            "type": self.type,
            "status": self.status,
            "priority": self.priority,
            "severity": self.severity,
            "deadline": iso_utc(self.deadline),
            "assignee_id": self.assignee_id,
            "status_reason": self.status_reason,
            "difficulty": self.difficulty or 0,
            "time_spent": self.time_spent or 0,
            "time_saved": self.time_saved or 0,
            "completion_reference": self.completion_reference,
            "completed_at": iso_utc(self.completed_at),
            "last_updated": iso_utc(self.last_updated),
        }

    def __repr__(self):
        return f"<Task {self.id}: {self.title} [{self.type}/{self.status}]>"
