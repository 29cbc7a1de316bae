"""
To-do reminder scanner tests.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from pulse.sync.effects import EffectDispatcher
from pulse.sync.entities import TeamMember, ToDo
from pulse.sync.reminders import ReminderScanner, due_at
from pulse.sync.store import DomainStore

NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)
ANN = TeamMember(id="1", name="ann")


@pytest.fixture()
def store():
    return DomainStore()


@pytest.fixture()
def scanner(store):
    actor = lambda: ANN  # noqa: E731
    dispatcher = EffectDispatcher(store, MagicMock(), actor, clock=lambda: NOW)
    s = ReminderScanner(store, dispatcher, actor, interval=30, lead_minutes=5, clock=lambda: NOW)
    yield s
    s.stop()


def _todo(todo_id, due_time, **kw):
    return ToDo(id=todo_id, title=f"todo {todo_id}", owner_id=kw.pop("owner_id", "1"),
                due_date="2024-05-10", due_time=due_time, **kw)


def test_due_at():
    assert due_at(_todo("1", "12:03")) == datetime(2024, 5, 10, 12, 3, tzinfo=timezone.utc)
    assert due_at(_todo("1", None)) is None
    assert due_at(_todo("1", "noon")) is None


def test_reminds_once_within_lead_window(store, scanner):
    store.replace_all("todos", [_todo("1", "12:03")])
    assert scanner.scan() == ["1"]
    assert store.notifications[0].message == 'Reminder: "todo 1" is due soon.'
    assert store.notifications[0].link == "todo"
    assert scanner.scan() == []
    assert len(store.notifications) == 1


@pytest.mark.parametrize("todo", [
    _todo("1", "12:10"),                    # beyond the lead window
    _todo("1", "11:59"),                    # already past
    _todo("1", "12:00"),                    # due exactly now
    _todo("1", "12:03", is_complete=True),
    _todo("1", "12:03", owner_id="2"),
])
def test_skipped(store, scanner, todo):
    store.replace_all("todos", [todo])
    assert scanner.scan() == []
    assert store.notifications == []


def test_no_user_no_scan(store):
    dispatcher = EffectDispatcher(store, MagicMock(), lambda: None, clock=lambda: NOW)
    s = ReminderScanner(store, dispatcher, lambda: None, clock=lambda: NOW)
    store.replace_all("todos", [_todo("1", "12:03")])
    assert s.scan() == []


def test_stop_forgets_reminded(store, scanner):
    store.replace_all("todos", [_todo("1", "12:03")])
    scanner.scan()
    scanner.stop()
    assert scanner.scan() == ["1"]


def test_start_and_stop_thread(scanner):
    scanner.start()
    assert scanner.running
    scanner.stop()
    assert not scanner.running
