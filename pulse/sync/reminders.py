"""
To-do reminder scanner.

A daemon thread wakes every ``interval`` seconds and notifies the logged-in
user of each of their incomplete to-dos that falls due within the next
``lead`` minutes. A to-do is reminded at most once per session.

Due date and time are read as UTC. The scanner only reads the store and
appends notifications.

Usage:
    scanner = ReminderScanner(store, dispatcher, actor=lambda: state.current_user)
    scanner.start()
    ...
    scanner.stop()
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from pulse.sync.effects import EffectDispatcher, Notify, utcnow
from pulse.sync.entities import TeamMember, ToDo
from pulse.utils.helpers import parse_date

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 30
DEFAULT_LEAD_MINUTES = 5


def due_at(todo: ToDo) -> datetime | None:
    """UTC datetime a to-do is due, or None without a usable date and time."""
    day = parse_date(todo.due_date)
    if day is None or not todo.due_time:
        return None
    try:
        hour, minute = (int(part) for part in todo.due_time.split(":")[:2])
        return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)
    except ValueError:
        return None


class ReminderScanner:
    """
    Background reminder loop.

    Args:
        store: DomainStore to read to-dos from.
        dispatcher: EffectDispatcher used to append notifications.
        actor: Callable returning the logged-in TeamMember (or None).
        interval: Seconds between scans.
        lead_minutes: How far ahead a due to-do is reminded.
        clock: Callable returning the current aware UTC datetime.
    """

    def __init__(
        self,
        store,
        dispatcher: EffectDispatcher,
        actor: Callable[[], TeamMember | None],
        interval: float = DEFAULT_INTERVAL_SECONDS,
        lead_minutes: int = DEFAULT_LEAD_MINUTES,
        clock=utcnow,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.actor = actor
        self.interval = interval
        self.lead = timedelta(minutes=lead_minutes)
        self.clock = clock
        self._notified: set[str] = set()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="pulse-reminders", daemon=True)
        self._thread.start()
        logger.info("Reminder scanner started (every %ss)", self.interval)

    def stop(self) -> None:
        """Stop the loop and forget which to-dos were already reminded."""
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.interval + 1)
        self._notified.clear()
        logger.info("Reminder scanner stopped")

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.scan()
            except Exception:
                logger.exception("Reminder scan failed")

    def scan(self, now: datetime | None = None) -> list[str]:
        """Remind due to-dos once; returns the ids reminded by this pass."""
        user = self.actor()
        if user is None:
            return []
        now = now or self.clock()
        horizon = now + self.lead

        reminded = []
        for todo in self.store.todos:
            if todo.owner_id != user.id or todo.is_complete or todo.id in self._notified:
                continue
            due = due_at(todo)
            if due is not None and now < due <= horizon:
                self.dispatcher.notify(Notify(user.id, f'Reminder: "{todo.title}" is due soon.', "todo"))
                self._notified.add(todo.id)
                reminded.append(todo.id)
        if reminded:
            logger.debug("Reminded %d to-do(s)", len(reminded))
        return reminded
