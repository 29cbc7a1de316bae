"""
Project Pulse
Member domain models.

Models:
    - Team: organisational team
    - User: team member with a role in the management hierarchy
"""

from datetime import datetime, timezone

from pulse.models import db
from pulse.utils.crypto import hash_password, verify_password


# ── Constants ────────────────────────────────────────────────────────────────

# Highest authority first; index is the rank.
ROLES = [
    "MD",
    "Director",
    "Admin Manager",
    "Operation Manager",
    "Super Leader",
    "Team Leader",
    "Sub-team Leader",
    "Staff",
]


class Team(db.Model):
    __tablename__ = "teams"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, default="")
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {"id": self.id, "name": self.name, "description": self.description or ""}

    def __repr__(self):
        return f"<Team {self.id}: {self.name}>"


class User(db.Model):
    """
    Team member.

    ``name`` doubles as the login user name. ``sub_team_leader_id`` is only
    meaningful for Staff.
    """

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False, unique=True)
    role = db.Column(db.String(40), nullable=False, default="Staff")
    title = db.Column(db.String(150), default="")
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id", ondelete="SET NULL"), nullable=True, index=True)
    sub_team_leader_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    office_location = db.Column(db.String(100), nullable=True)
    avatar_url = db.Column(db.String(500), default="")
    password_hash = db.Column(db.String(256), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def set_password(self, password):
        self.password_hash = hash_password(password)

    def check_password(self, password):
        if not self.password_hash or not password:
            return False
        return verify_password(password, self.password_hash)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "title": self.title or "",
            "team_id": self.team_id,
            "sub_team_leader_id": self.sub_team_leader_id,
            "office_location": self.office_location,
            "avatar_url": self.avatar_url or "",
        }

    def __repr__(self):
        return f"<User {self.id}: {self.name} ({self.role})>"
