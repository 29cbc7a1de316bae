"""
Project Pulse
Settings models: dropdown lists and the single system configuration row.

Models:
    - Tool, Department, ProjectPhase, RiskLevel: Active/Inactive list items
    - SystemConfiguration: organisation-wide settings (one row)
"""

from pulse.models import db

ITEM_STATUSES = ("Active", "Inactive")


class Tool(db.Model):
    __tablename__ = "tools"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    status = db.Column(db.String(10), nullable=False, default="Active")

    def to_dict(self):
        return {"id": self.id, "name": self.name, "status": self.status}


class Department(db.Model):
    __tablename__ = "departments"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, default="")
    status = db.Column(db.String(10), nullable=False, default="Active")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "status": self.status,
        }


class ProjectPhase(db.Model):
    __tablename__ = "project_phases"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, default="")
    status = db.Column(db.String(10), nullable=False, default="Active")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "status": self.status,
        }


class RiskLevel(db.Model):
    __tablename__ = "risk_levels"

    id = db.Column(db.Integer, primary_key=True)
    level = db.Column(db.String(50), nullable=False)
    description = db.Column(db.Text, default="")
    color = db.Column(db.String(20), default="")
    status = db.Column(db.String(10), nullable=False, default="Active")

    def to_dict(self):
        return {
            "id": self.id,
            "level": self.level,
            "description": self.description or "",
            "color": self.color or "",
            "status": self.status,
        }


class SystemConfiguration(db.Model):
    __tablename__ = "system_configuration"

    id = db.Column(db.Integer, primary_key=True)
    organization_name = db.Column(db.String(200), default="")
    notification_email = db.Column(db.String(200), default="")
    default_currency = db.Column(db.String(10), default="USD")
    auto_escalation_days = db.Column(db.Integer, default=3)
    fiscal_year_start = db.Column(db.String(10), default="01-01")
    backup_frequency = db.Column(db.String(20), default="Daily")

    def to_dict(self):
        return {
            "organization_name": self.organization_name or "",
            "notification_email": self.notification_email or "",
            "default_currency": self.default_currency or "",
            "auto_escalation_days": self.auto_escalation_days or 0,
            "fiscal_year_start": self.fiscal_year_start or "",
            "backup_frequency": self.backup_frequency or "",
        }

    @classmethod
    def current(cls):
        """Return the single configuration row, creating it on first access."""
        row = cls.query.order_by(cls.id).first()
        if row is None:
            row = cls()
            db.session.add(row)
            db.session.flush()
        return row
