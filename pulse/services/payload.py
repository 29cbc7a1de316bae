"""
Request payload coercion shared by the backend services.

Each service declares the columns a client may write and their kind; this
module resolves camelCase aliases, coerces values and assigns them.

Usage:
    changed = apply_payload(project, data, PROJECT_FIELDS, aliases=PROJECT_ALIASES)
"""

import logging

from pulse.core.exceptions import ValidationError
from pulse.utils.helpers import canonical_keys, parse_date, parse_timestamp, to_number

logger = logging.getLogger(__name__)


def _coerce(name, kind, value):
    if value is None:
        return None
    if value == "":
        return "" if kind in ("str", "text", "json") else None
    if kind == "int":
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{name} must be an integer", {name: value}) from None
    if kind == "float":
        number = to_number(value, default=None)
        if number is None:
            raise ValidationError(f"{name} must be a number", {name: value})
        return number
    if kind == "bool":
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes")
        return bool(value)
    if kind == "datetime":
        dt = parse_timestamp(value)
        if dt is None:
            raise ValidationError(f"{name} is not a valid timestamp", {name: value})
        return dt
    if kind == "naive_utc":
        dt = parse_timestamp(value)
        if dt is None:
            raise ValidationError(f"{name} is not a valid timestamp", {name: value})
        return dt.replace(tzinfo=None)
    if kind == "date":
        d = parse_date(value)
        if d is None:
            raise ValidationError(f"{name} is not a valid date", {name: value})
        return d
    if kind == "str":
        return str(value).strip()
    return value


def apply_payload(obj, data, fields, aliases=None):
    """Coerce and assign the writable *fields* present in *data*.

    Args:
        obj: Model instance to update.
        data: Raw request body.
        fields: Mapping of column name -> kind
            (str | text | int | float | bool | datetime | naive_utc | date | json).
        aliases: Extra key -> column name mappings.

    Returns:
        List of column names that were assigned.

    Raises:
        ValidationError: A value cannot be coerced to its column kind.
    """
    changed = []
    for key, value in canonical_keys(data, aliases).items():
        kind = fields.get(key)
        if kind is None:
            continue
        setattr(obj, key, _coerce(key, kind, value))
        changed.append(key)
    return changed
