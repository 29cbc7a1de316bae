"""
Project Pulse
Audit domain model.

Models:
    - AuditLog: append-only trail of user actions on projects.
"""

from datetime import datetime, timezone

from pulse.models import db
from pulse.utils.helpers import iso_utc


class AuditLog(db.Model):
    """
    Append-only audit trail.

    ``details`` is free text written by the client; ``entity_id`` is a
    string so non-integer ids survive.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("idx_audit_entity", "entity_type", "entity_id"),
        db.Index("idx_audit_ts", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = db.Column(db.String(120), nullable=False)
    entity_type = db.Column(db.String(30), nullable=False, default="project")
    entity_id = db.Column(db.String(36), nullable=True)
    details = db.Column(db.Text, default="")
    timestamp = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "details": self.details or "",
            "timestamp": iso_utc(self.timestamp),
        }

    def __repr__(self):
        return f"<AuditLog {self.id}: {self.action} on {self.entity_type}/{self.entity_id}>"
