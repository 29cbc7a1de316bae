"""
Application state for the sync client.

``AppState`` wires the gateway, store, effect dispatcher, coordinator and
reminder scanner together and owns the session lifecycle:

    restore   read the persisted session; hydrate if a user was logged in
    login     authenticate, persist the user, hydrate, start reminders
    hydrate   load every resource list and the system configuration
    logout    stop reminders, clear the store, forget the user

``LocalState`` is the client-local persistence: a small JSON file holding
``current_user`` and ``active_tab``.

Usage:
    state = AppState.from_config(config["development"])
    state.restore() or state.login("admin", "admin")
    summary = executive_summary(state.store.projects, state.store.tasks,
                                state.store.members, now)
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict

from pulse.core.exceptions import ValidationError
from pulse.integrations.pulse_gateway import PulseGateway
from pulse.middleware.logging_config import configure_client_logging
from pulse.sync.coordinator import MutationCoordinator
from pulse.sync.effects import EffectDispatcher, utcnow
from pulse.sync.entities import TeamMember
from pulse.sync.normalizer import normalize_many, normalize_member, normalize_system_configuration
from pulse.sync.reminders import DEFAULT_INTERVAL_SECONDS, DEFAULT_LEAD_MINUTES, ReminderScanner
from pulse.sync.store import DomainStore, audit_sort_key

logger = logging.getLogger(__name__)

STATE_FILENAME = "client_state.json"
DEFAULT_TAB = "dashboard"

# REST resource -> store kind
HYDRATE_RESOURCES = {
    "projects": "projects",
    "users": "members",
    "tasks": "tasks",
    "todos": "todos",
    "leaves": "leave",
    "audit-logs": "audit_logs",
    "teams": "teams",
    "tools": "tools",
    "risk-levels": "risk_levels",
    "departments": "departments",
    "project-phases": "project_phases",
}


class LocalState:
    """JSON file with the logged-in user and the active tab.

    A missing or unreadable file reads as the defaults.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self.current_user: dict | None = None
        self.active_tab: str = DEFAULT_TAB

    def load(self) -> LocalState:
        try:
            with open(self.path, encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return self
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable client state %s: %s", self.path, exc)
            return self
        if not isinstance(data, dict):
            return self
        user = data.get("current_user")
        self.current_user = user if isinstance(user, dict) else None
        self.active_tab = data.get("active_tab") or DEFAULT_TAB
        return self

    def save(self) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp = f"{self.path}.tmp"
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump({"current_user": self.current_user, "active_tab": self.active_tab}, fh)
        os.replace(tmp, self.path)


class AppState:
    """
    The client's single state tree.

    Args:
        gateway: PulseGateway to talk to the backend.
        local_state: LocalState for session persistence.
        reminder_interval: Seconds between reminder scans.
        reminder_lead_minutes: Reminder look-ahead.
        clock: Callable returning the current aware UTC datetime.
    """

    def __init__(
        self,
        gateway: PulseGateway,
        local_state: LocalState,
        reminder_interval: float = DEFAULT_INTERVAL_SECONDS,
        reminder_lead_minutes: int = DEFAULT_LEAD_MINUTES,
        clock=utcnow,
    ) -> None:
        self.gateway = gateway
        self.local_state = local_state
        self.clock = clock
        self.current_user: TeamMember | None = None
        self.store = DomainStore()
        self.dispatcher = EffectDispatcher(self.store, gateway, self._actor, clock=clock)
        self.coordinator = MutationCoordinator(
            self.store, gateway, self.dispatcher, self._actor,
            clock=clock, on_actor_changed=self._set_user,
        )
        self.reminders = ReminderScanner(
            self.store, self.dispatcher, self._actor,
            interval=reminder_interval, lead_minutes=reminder_lead_minutes, clock=clock,
        )

    @classmethod
    def from_config(cls, cfg, session=None) -> AppState:
        """Build a standalone client from a config class (see ``pulse.config``).

        Installs the client log handler as well.
        """
        configure_client_logging(cfg)
        path = os.path.join(cfg.PULSE_STATE_DIR, STATE_FILENAME)
        return cls(
            PulseGateway.from_config(cfg, session=session),
            LocalState(path),
            reminder_interval=cfg.PULSE_REMINDER_INTERVAL,
            reminder_lead_minutes=cfg.PULSE_REMINDER_LEAD_MINUTES,
        )

    def _actor(self) -> TeamMember | None:
        return self.current_user

    def _set_user(self, member: TeamMember | None) -> None:
        self.current_user = member
        self.local_state.current_user = asdict(member) if member is not None else None
        self.local_state.save()

    # ── Session lifecycle ────────────────────────────────────────────────────

    def restore(self) -> TeamMember | None:
        """Resume a persisted session, if any."""
        self.local_state.load()
        if not self.local_state.current_user:
            return None
        self.current_user = normalize_member(self.local_state.current_user)
        logger.info("Restoring session for %s", self.current_user.name)
        self.hydrate()
        self.reminders.start()
        return self.current_user

    def hydrate(self) -> None:
        """Load every resource list and the system configuration.

        Raises:
            RemoteCallError: any list call fails; the store is left untouched.
        """
        loaded = {kind: normalize_many(kind, self.gateway.list(resource))
                  for resource, kind in HYDRATE_RESOURCES.items()}
        loaded["audit_logs"].sort(key=audit_sort_key, reverse=True)
        cfg = normalize_system_configuration(self.gateway.get_system_configuration())

        with self.store.transaction():
            for kind, entities in loaded.items():
                self.store.replace_all(kind, entities)
            self.store.set_system_configuration(cfg)
        logger.info("Hydrated store: %s", ", ".join(f"{k}={len(v)}" for k, v in loaded.items()))

    def login(self, username: str, password: str) -> TeamMember:
        """Authenticate and load the workspace.

        Raises:
            ValidationError: blank username or password.
            RemoteCallError: bad credentials (with the server's message) or
                any transport failure.
        """
        if not (username or "").strip() or not password:
            raise ValidationError("Username and password are required.")
        member = normalize_member(self.gateway.authenticate(username.strip(), password))
        self._set_user(member)
        logger.info("User %s logged in", member.name, extra={"user_id": member.id})
        self.hydrate()
        self.reminders.start()
        return member

    def logout(self) -> None:
        self.reminders.stop()
        self.store.clear()
        user, self.current_user = self.current_user, None
        self.local_state.current_user = None
        self.local_state.save()
        if user is not None:
            logger.info("User %s logged out", user.name, extra={"user_id": user.id})

    def close(self) -> None:
        self.reminders.stop()
        self.gateway.close()

    # ── Client-local preferences ─────────────────────────────────────────────

    @property
    def active_tab(self) -> str:
        return self.local_state.active_tab

    @active_tab.setter
    def active_tab(self, tab: str) -> None:
        self.local_state.active_tab = tab or DEFAULT_TAB
        self.local_state.save()

    # ── Read-through calls ───────────────────────────────────────────────────

    def member_performance(self, member_id) -> dict:
        """Performance aggregate for one member, straight from the backend."""
        return self.gateway.get_member_performance(member_id)
