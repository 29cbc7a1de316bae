"""
Project Pulse
Personal to-do items with an optional recurrence.
"""

from datetime import datetime, timezone

from pulse.models import db
from pulse.utils.helpers import iso_utc


class ToDo(db.Model):
    __tablename__ = "todos"

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    due_date = db.Column(db.String(10), nullable=True, comment="YYYY-MM-DD")
    due_time = db.Column(db.String(5), nullable=True, comment="HH:MM")
    frequency = db.Column(db.String(10), nullable=False, default="Once")
    is_complete = db.Column(db.Boolean, nullable=False, default=False)
    last_completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "due_date": self.due_date,
            "due_time": self.due_time,
            "frequency": self.frequency,
            "is_complete": bool(self.is_complete),
            "last_completed_at": iso_utc(self.last_completed_at),
            "created_at": iso_utc(self.created_at),
        }

    def __repr__(self):
        return f"<ToDo {self.id}: {self.title}>"
