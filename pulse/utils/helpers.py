"""Shared utility functions for blueprints, services and the sync layer.

get_or_404:          tuple-return lookup for blueprints (NOT abort)
parse_date:          returns None on bad input
parse_timestamp:     tolerant timestamp parser, always UTC-aware
to_number:           safe numeric coercion with a default
canonical_keys:      camelCase / alias keys -> snake_case
db_commit_or_error:  commit helper returning an error response on failure
"""
import logging
import math
import re
from datetime import date, datetime, timezone

from flask import jsonify

from pulse.models import db
from pulse.utils.errors import E, api_error

logger = logging.getLogger(__name__)

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def get_or_404(model, pk, label=None, *, include_deleted=False):
    """Fetch a model instance by primary key or return a 404 error tuple.

    - Success: (obj, None)
    - Failure: (None, (jsonify_response, 404))

    Soft-deleted rows count as missing unless ``include_deleted`` is set.

        obj, err = get_or_404(Project, pid)
        if err:
            return err
    """
    label = label or model.__name__
    obj = db.session.get(model, pk)
    if not obj or (not include_deleted and getattr(obj, "is_deleted", False)):
        return None, api_error(E.NOT_FOUND, f"{label} not found")
    return obj, None


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - DD.MM.YYYY
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    ts = parse_timestamp(value)
    if ts is not None:
        return ts.date()
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except (ValueError, TypeError):
        return None


def parse_timestamp(value):
    """Parse a timestamp into a timezone-aware UTC datetime.

    Accepts ``datetime`` objects, ISO strings with a ``T`` or a space between
    date and time (``2024-03-01 09:30:00``), a trailing ``Z``, and bare dates
    (midnight UTC). Naive values are taken as UTC. Returns None for
    empty/invalid input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        raw = str(value).strip()
        if "T" not in raw and " " in raw:
            raw = raw.replace(" ", "T", 1)
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_number(value, default=0.0):
    """Coerce *value* to float, returning *default* when it is absent or
    not a finite number."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def snake_case(key):
    """``leadId`` -> ``lead_id``; snake_case keys are returned unchanged."""
    return _CAMEL_RE.sub("_", key).lower()


def canonical_keys(data, aliases=None):
    """Return *data* with alias and camelCase keys rewritten to snake_case.

    An explicit key wins over an alias or camelCase spelling of it.
    """
    aliases = aliases or {}
    out = {}
    explicit = set()
    for key, value in data.items():
        target = aliases.get(key) or snake_case(str(key))
        if key == target:
            out[target] = value
            explicit.add(target)
        elif target not in explicit:
            out[target] = value
    return out


def iso_utc(dt):
    """Serialise a datetime as an ISO string in UTC (naive values are UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc).isoformat()
    return dt.astimezone(timezone.utc).isoformat()


# ── Database commit helper ───────────────────────────────────────────────────

def db_commit_or_error():
    """Commit the current SQLAlchemy session, returning an error response on failure.

    Returns:
        None on success.
        (response, status_code) tuple on failure - ready for ``return``.

    IntegrityError → 409 (duplicate / constraint violation)
    OperationalError → 500 (connection / lock issues)
    Other → 500 (unexpected)
    """
    from sqlalchemy.exc import IntegrityError, OperationalError

    try:
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return jsonify({"error": "Duplicate or constraint violation"}), 409
    except OperationalError:
        db.session.rollback()
        logger.exception("Database operational error on commit")
        return jsonify({"error": "Database error"}), 500
    except Exception:
        db.session.rollback()
        logger.exception("Unexpected database error on commit")
        return jsonify({"error": "Database error"}), 500
