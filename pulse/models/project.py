"""
Project Pulse
Project domain model.

Projects form a tree through ``parent_id``; a sub-project carries a
``weight`` (percentage of the parent it represents). Deletion is a soft
delete that cascades to descendants and their tasks (see
``pulse.services.project_service``).
"""

from datetime import datetime, timezone

from pulse.models import db
from pulse.models.soft_delete import SoftDeleteMixin
from pulse.utils.helpers import iso_utc

# Server-side timer stamps use the SQL "YYYY-MM-DD HH:MM:SS" form.
TIMER_STAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timer_stamp(dt):
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.strftime(TIMER_STAMP_FORMAT)


class Project(SoftDeleteMixin, db.Model):
    __tablename__ = "projects"
    __table_args__ = (
        db.Index("idx_project_parent", "parent_id"),
        db.Index("idx_project_owner", "owner_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    status = db.Column(db.String(40), nullable=False, default="Not started")

    owner_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id", ondelete="SET NULL"), nullable=True)
    parent_id = db.Column(db.Integer, db.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True)
    weight = db.Column(db.Float, nullable=True, comment="Percentage of the parent, 1-100")

    # Hours
    allocated_hours = db.Column(db.Float, default=0)
    used_hours = db.Column(db.Float, default=0)
    additional_hours = db.Column(db.Float, default=0)
    saved_hours = db.Column(db.Float, nullable=True)
    expected_saved_hours = db.Column(db.Float, nullable=True)

    # Recurrence of saved-time logging
    frequency = db.Column(db.String(30), nullable=True)
    frequency_detail = db.Column(db.Text, nullable=True, comment="'1,15' or JSON list of dates")

    timer_start_time = db.Column(db.DateTime, nullable=True, comment="UTC, naive")
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    end_date = db.Column(db.Date, nullable=True)

    users = db.Column(db.JSON, default=list, comment="[{type: user|team, id}]")
    tools_used = db.Column(db.JSON, default=list)
    last_used_by = db.Column(db.JSON, default=list, comment="[{user_id, date, saved_hours}]")
    end_user_feedback = db.Column(db.JSON, nullable=True)
    latest_comments = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "status": self.status,
            "owner_id": self.owner_id,
            "team_id": self.team_id,
            "parent_id": self.parent_id,
            "weight": self.weight,
            "allocated_hours": self.allocated_hours or 0,
            "used_hours": self.used_hours or 0,
            "additional_hours": self.additional_hours or 0,
            "saved_hours": self.saved_hours,
            "expected_saved_hours": self.expected_saved_hours,
            "frequency": self.frequency,
            "frequency_detail": self.frequency_detail,
            "timer_start_time": format_timer_stamp(self.timer_start_time),
            "completed_at": iso_utc(self.completed_at),
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "users": self.users or [],
            "tools_used": self.tools_used or [],
            "last_used_by": self.last_used_by or [],
            "end_user_feedback": self.end_user_feedback,
            "latest_comments": self.latest_comments,
            "created_at": iso_utc(self.created_at),
        }

    def __repr__(self):
        return f"<Project {self.id}: {self.name} [{self.status}]>"
