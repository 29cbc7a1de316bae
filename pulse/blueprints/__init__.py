"""
Project Pulse
Blueprint registry helpers.
"""

from flask import request

from pulse.core.exceptions import ConflictError, NotFoundError, ValidationError
from pulse.models import db
from pulse.utils.errors import E, api_error


def paginate_query(query, default_limit=500, max_limit=2000):
    """Apply limit/offset pagination to a SQLAlchemy query.

    Query params:
        limit  - max items (default 500, capped at max_limit)
        offset - starting position (default 0)

    Returns:
        (items_list, total_count)
    """
    total = query.count()
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    items = query.limit(limit).offset(offset).all()
    return items, total


def service_error(exc):
    """Roll back the unit of work and map a service exception to a JSON error."""
    db.session.rollback()
    if isinstance(exc, ValidationError):
        return api_error(E.VALIDATION_INVALID, str(exc), details=exc.details)
    if isinstance(exc, NotFoundError):
        return api_error(E.NOT_FOUND, str(exc))
    if isinstance(exc, ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(exc), details={exc.field: exc.value})
    return api_error(E.INTERNAL, "Unexpected error")
