"""
Soft delete mixin for projects and tasks.

Deleting a project keeps the rows and stamps ``deleted_at`` on the project,
its descendants and their tasks; list endpoints only return active rows.

Usage:
    class Project(SoftDeleteMixin, db.Model):
        ...

    project.soft_delete()
    Project.query_active().all()
"""

from datetime import datetime, timezone

from pulse.models import db


class SoftDeleteMixin:
    """Adds a nullable ``deleted_at`` column and active/deleted query helpers."""

    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, default=None, index=True)

    def soft_delete(self, at=None):
        """Mark this record as deleted (idempotent: keeps the first stamp)."""
        if self.deleted_at is None:
            self.deleted_at = at or datetime.now(timezone.utc)

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    @classmethod
    def query_active(cls):
        """Return a query that excludes soft-deleted records."""
        return cls.query.filter(cls.deleted_at.is_(None))
