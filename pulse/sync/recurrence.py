"""
Recurrence rules.

Saved-time logging: a completed project with a ``frequency`` asks its users
to log the hours it saved on a schedule. ``is_saved_time_log_due`` decides,
from the latest ``last_used_by`` entry, whether another log is due today.
All calendar arithmetic is in UTC on whole days.

To-do rollover: ``next_due_date`` advances a recurring to-do's due date by
one unit of its frequency.
"""

from __future__ import annotations

import calendar
import json
import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta

from pulse.sync.entities import Project, ProjectFrequency, ProjectStatus, ToDoFrequency
from pulse.utils.helpers import parse_date, parse_timestamp

logger = logging.getLogger(__name__)

WeekStart = Callable[[date], date]

DEFAULT_TWICE_A_MONTH = "1,15"
THREE_WEEKS = timedelta(days=21)


# ── Week boundaries ──────────────────────────────────────────────────────────

def monday_week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def sunday_week_start(day: date) -> date:
    return day - timedelta(days=(day.weekday() + 1) % 7)


# ── Helpers ──────────────────────────────────────────────────────────────────

def _utc_day(value) -> date | None:
    dt = parse_timestamp(value)
    return dt.date() if dt is not None else None


def last_log_day(project: Project) -> date | None:
    """UTC day of the most recent ``last_used_by`` entry, or None."""
    days = [d for d in (_utc_day(e.date) for e in project.last_used_by) if d is not None]
    return max(days) if days else None


def _day_in_month(today: date, day_number: int) -> date:
    last = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=min(day_number, last))


def _twice_a_month_days(detail: str | None) -> list[int]:
    days = []
    for part in (detail or DEFAULT_TWICE_A_MONTH).split(","):
        try:
            number = int(part.strip())
        except ValueError:
            continue
        if number >= 1:
            days.append(number)
    return days


def _specific_dates(detail: str | None) -> list[date] | None:
    try:
        values = json.loads(detail or "[]")
    except (TypeError, ValueError):
        return None
    if not isinstance(values, list):
        return None
    return [d for d in (parse_date(v) for v in values if isinstance(v, str)) if d is not None]


# ── Saved-time logs ──────────────────────────────────────────────────────────

def is_saved_time_log_due(project: Project, now, week_start: WeekStart = monday_week_start) -> bool:
    """True when *project* should get a saved-time log today.

    No previous log means due; an unknown or absent frequency is never due.
    """
    if not project.frequency:
        return False
    today = _utc_day(now)
    last = last_log_day(project)
    if last is None:
        return True

    freq = project.frequency
    if freq == ProjectFrequency.DAILY:
        return last < today
    if freq == ProjectFrequency.WEEKLY:
        return last < week_start(today)
    if freq == ProjectFrequency.MONTHLY:
        return last < today.replace(day=1)
    if freq == ProjectFrequency.TWICE_A_MONTH:
        for number in _twice_a_month_days(project.frequency_detail):
            occurrence = _day_in_month(today, number)
            if today >= occurrence and last < occurrence:
                return True
        return False
    if freq == ProjectFrequency.THREE_WEEKS_ONCE:
        return today - last >= THREE_WEEKS
    if freq == ProjectFrequency.SPECIFIC_DATES:
        dates = _specific_dates(project.frequency_detail)
        if dates is None:
            logger.warning("Project %s has unreadable specific dates: %r", project.id, project.frequency_detail)
            return False
        return any(last < d <= today for d in dates)
    return False


def projects_due_for_saved_time(
    projects: Iterable[Project], now, week_start: WeekStart = monday_week_start,
) -> list[Project]:
    """Completed projects with a frequency whose saved-time log is due."""
    return [
        p for p in projects
        if p.status == ProjectStatus.COMPLETED and p.frequency
        and is_saved_time_log_due(p, now, week_start)
    ]


# ── To-do rollover ───────────────────────────────────────────────────────────

def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def next_due_date(due_date: str | None, frequency: str, now: datetime | None = None) -> str | None:
    """Advance *due_date* ("YYYY-MM-DD") by one unit of *frequency*.

    Once (or unknown) returns the date unchanged. A missing due date rolls
    from today's UTC date. Monthly clamps to the end of shorter months.
    """
    base = parse_date(due_date)
    if base is None:
        if due_date:
            return due_date
        base = _utc_day(now) if now is not None else None
        if base is None:
            return due_date
    if frequency == ToDoFrequency.DAILY:
        nxt = base + timedelta(days=1)
    elif frequency == ToDoFrequency.WEEKLY:
        nxt = base + timedelta(days=7)
    elif frequency == ToDoFrequency.MONTHLY:
        nxt = _add_months(base, 1)
    else:
        return due_date
    return nxt.isoformat()
