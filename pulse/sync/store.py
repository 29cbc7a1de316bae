"""
In-memory normalized domain store.

One ordered ``id -> entity`` mapping per kind plus the single system
configuration record. Readers get read-only views; writes go through the
mutators below, which bump a per-kind version and notify subscribers.

Memoized indexes (``members_by_id``, ``projects_by_id``, ``tasks_by_id``,
``children_by_parent``) are rebuilt lazily when the version of the kind
they derive from changes.

Writes take an ``RLock`` so the reminder thread's notification append
cannot interleave with a commit. Listeners run after the lock is released.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from contextlib import contextmanager
from datetime import datetime, timezone
from types import MappingProxyType

from pulse.sync.entities import AuditLog, Notification, SystemConfiguration
from pulse.utils.helpers import parse_timestamp

logger = logging.getLogger(__name__)

KINDS = (
    "projects",
    "tasks",
    "todos",
    "members",
    "teams",
    "tools",
    "leave",
    "audit_logs",
    "notifications",
    "project_phases",
    "departments",
    "risk_levels",
)

Listener = Callable[[frozenset], None]

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def audit_sort_key(entry):
    return parse_timestamp(entry.timestamp) or _EPOCH


class DomainStore:
    """
    Normalized entity store.

    Usage:
        store = DomainStore()
        store.replace_all("projects", projects)
        with store.transaction():
            store.upsert("projects", child)
            store.upsert("projects", parent)
        store.projects_by_id["7"].status
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._data: dict[str, dict] = {kind: {} for kind in KINDS}
        self._versions: dict[str, int] = {kind: 0 for kind in KINDS}
        self._memo: dict[str, tuple[int, object]] = {}
        self._listeners: list[Listener] = []
        self._tx_depth = 0
        self._pending: set[str] = set()
        self.system_configuration: SystemConfiguration = SystemConfiguration()

    # ── Read access ──────────────────────────────────────────────────────────

    def view(self, kind: str) -> MappingProxyType:
        """Read-only ``id -> entity`` view in insertion order."""
        return MappingProxyType(self._data[kind])

    def all(self, kind: str) -> list:
        with self._lock:
            return list(self._data[kind].values())

    def get(self, kind: str, entity_id):
        if entity_id is None:
            return None
        return self._data[kind].get(str(entity_id))

    def version(self, kind: str) -> int:
        return self._versions[kind]

    @property
    def projects(self) -> list:
        return self.all("projects")

    @property
    def tasks(self) -> list:
        return self.all("tasks")

    @property
    def todos(self) -> list:
        return self.all("todos")

    @property
    def members(self) -> list:
        return self.all("members")

    @property
    def notifications(self) -> list:
        return self.all("notifications")

    @property
    def audit_logs(self) -> list:
        return self.all("audit_logs")

    # ── Memoized indexes ─────────────────────────────────────────────────────

    def _memoized(self, name: str, kind: str, build: Callable[[], object]):
        version = self._versions[kind]
        cached = self._memo.get(name)
        if cached is not None and cached[0] == version:
            return cached[1]
        with self._lock:
            value = build()
            self._memo[name] = (version, value)
        return value

    @property
    def members_by_id(self) -> MappingProxyType:
        return self._memoized("members_by_id", "members", lambda: MappingProxyType(dict(self._data["members"])))

    @property
    def projects_by_id(self) -> MappingProxyType:
        return self._memoized("projects_by_id", "projects", lambda: MappingProxyType(dict(self._data["projects"])))

    @property
    def tasks_by_id(self) -> MappingProxyType:
        return self._memoized("tasks_by_id", "tasks", lambda: MappingProxyType(dict(self._data["tasks"])))

    @property
    def children_by_parent(self) -> MappingProxyType:
        """``parent_id -> (child, ...)`` in store order."""
        def build():
            index: dict[str, list] = {}
            for project in self._data["projects"].values():
                if project.parent_id is not None:
                    index.setdefault(project.parent_id, []).append(project)
            return MappingProxyType({k: tuple(v) for k, v in index.items()})

        return self._memoized("children_by_parent", "projects", build)

    def tasks_for_project(self, project_id) -> list:
        pid = str(project_id)
        return [t for t in self.all("tasks") if t.project_id == pid]

    # ── Subscription ─────────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener(changed_kinds)*; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, kinds: frozenset) -> None:
        for listener in list(self._listeners):
            try:
                listener(kinds)
            except Exception:
                logger.exception("Store listener failed")

    @contextmanager
    def transaction(self):
        """Group commits so listeners observe them once, together."""
        with self._lock:
            self._tx_depth += 1
        try:
            yield self
        finally:
            with self._lock:
                self._tx_depth -= 1
                flush = self._tx_depth == 0 and self._pending
                changed = frozenset(self._pending) if flush else frozenset()
                if flush:
                    self._pending.clear()
            if changed:
                self._notify(changed)

    def _touch(self, kind: str) -> None:
        self._versions[kind] += 1
        self._pending.add(kind)

    def _commit(self, mutate: Callable[[], Iterable[str]]) -> None:
        with self.transaction():
            with self._lock:
                for kind in mutate():
                    self._touch(kind)

    # ── Mutators ─────────────────────────────────────────────────────────────

    def replace_all(self, kind: str, entities: Iterable) -> None:
        def mutate():
            self._data[kind] = {str(e.id): e for e in entities}
            return (kind,)

        self._commit(mutate)

    def upsert(self, kind: str, entity) -> None:
        """Insert or replace by id; a replaced entity keeps its position."""
        def mutate():
            self._data[kind][str(entity.id)] = entity
            return (kind,)

        self._commit(mutate)

    def upsert_many(self, kind: str, entities: Iterable) -> None:
        def mutate():
            for e in entities:
                self._data[kind][str(e.id)] = e
            return (kind,)

        self._commit(mutate)

    def remove(self, kind: str, entity_ids: Iterable) -> list:
        """Remove the given ids; returns the entities that were present."""
        removed = []

        def mutate():
            for entity_id in entity_ids:
                entity = self._data[kind].pop(str(entity_id), None)
                if entity is not None:
                    removed.append(entity)
            return (kind,) if removed else ()

        self._commit(mutate)
        return removed

    def _prepend(self, kind: str, entity) -> None:
        items = self._data[kind]
        items.pop(str(entity.id), None)
        self._data[kind] = {str(entity.id): entity, **items}

    def push_notification(self, notification: Notification) -> None:
        """Add a notification at the front (newest first)."""
        def mutate():
            self._prepend("notifications", notification)
            return ("notifications",)

        self._commit(mutate)

    def add_audit_log(self, entry: AuditLog) -> None:
        """Insert an audit entry keeping the list sorted newest first."""
        def mutate():
            items = dict(self._data["audit_logs"])
            items[str(entry.id)] = entry
            ordered = sorted(items.values(), key=audit_sort_key, reverse=True)
            self._data["audit_logs"] = {str(e.id): e for e in ordered}
            return ("audit_logs",)

        self._commit(mutate)

    def set_system_configuration(self, cfg: SystemConfiguration) -> None:
        with self.transaction():
            with self._lock:
                self.system_configuration = cfg
                self._pending.add("system_configuration")

    def clear(self) -> None:
        """Drop every entity (used on logout)."""
        def mutate():
            for kind in KINDS:
                self._data[kind] = {}
            self.system_configuration = SystemConfiguration()
            return KINDS

        self._commit(mutate)
