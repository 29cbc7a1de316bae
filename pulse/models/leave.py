"""
Project Pulse
Leave (absence) records for team members.
"""

from pulse.models import db
from pulse.utils.helpers import iso_utc


class Leave(db.Model):
    __tablename__ = "leaves"

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    start_date = db.Column(db.DateTime(timezone=True), nullable=False)
    end_date = db.Column(db.DateTime(timezone=True), nullable=False)
    reason = db.Column(db.Text, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "member_id": self.member_id,
            "start_date": iso_utc(self.start_date),
            "end_date": iso_utc(self.end_date),
            "reason": self.reason,
        }

    def __repr__(self):
        return f"<Leave {self.id}: member={self.member_id}>"
