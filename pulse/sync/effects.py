"""
Post-commit effects.

Coordinator handlers do not notify or audit directly: they return a
``MutationOutcome`` listing the effects, and ``EffectDispatcher`` runs them
after the store commit.

    Notify  append a client-side notification for a member
    Audit   write an audit-log entry through the gateway (fire-and-forget)
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pulse.core.exceptions import RemoteCallError
from pulse.sync.entities import Notification, TeamMember
from pulse.sync.normalizer import normalize_audit_log

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notify:
    recipient_id: str | None
    message: str
    link: str | None = None


@dataclass(frozen=True)
class Audit:
    action: str
    details: str
    project_id: str | None = None


@dataclass
class MutationOutcome:
    value: Any = None
    effects: list = field(default_factory=list)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EffectDispatcher:
    """
    Executes effects in order.

    Args:
        store: DomainStore receiving notifications and audit entries.
        gateway: PulseGateway used for audit writes.
        actor: Callable returning the logged-in TeamMember (or None).
        clock: Callable returning the current aware datetime.
    """

    def __init__(self, store, gateway, actor: Callable[[], TeamMember | None], clock=utcnow) -> None:
        self.store = store
        self.gateway = gateway
        self.actor = actor
        self.clock = clock
        self._listeners: list[Callable[[Notification], None]] = []

    def on_notification(self, listener: Callable[[Notification], None]) -> None:
        """Register a callback for notifications addressed to the current user."""
        self._listeners.append(listener)

    def dispatch(self, effects) -> None:
        for effect in effects:
            if isinstance(effect, Notify):
                self.notify(effect)
            elif isinstance(effect, Audit):
                self.audit(effect)
            else:
                logger.error("Unknown effect %r", effect)

    # ── Notify ───────────────────────────────────────────────────────────────

    def notify(self, effect: Notify) -> Notification | None:
        if not effect.recipient_id:
            return None
        notification = Notification(
            id=uuid.uuid4().hex,
            recipient_id=str(effect.recipient_id),
            message=effect.message,
            link=effect.link,
            is_read=False,
            created_at=self.clock().isoformat(),
        )
        self.store.push_notification(notification)

        current = self.actor()
        if current is not None and current.id == notification.recipient_id:
            for listener in list(self._listeners):
                try:
                    listener(notification)
                except Exception:
                    logger.exception("Notification listener failed")
        return notification

    # ── Audit ────────────────────────────────────────────────────────────────

    def audit(self, effect: Audit) -> None:
        """Write one audit entry; failures are logged and swallowed."""
        user = self.actor()
        if user is None:
            logger.debug("Audit %r skipped: no logged-in user", effect.action)
            return
        entry = {
            "user_id": user.id,
            "action": effect.action,
            "entity_type": "project",
            "entity_id": effect.project_id or "",
            "timestamp": self.clock().isoformat(),
            "details": effect.details,
        }
        try:
            created = self.gateway.add_audit_log(entry)
        except RemoteCallError as exc:
            logger.warning(
                "Audit write failed for %r: %s", effect.action, exc,
                extra={"action": effect.action, "project_id": effect.project_id},
            )
            return
        self.store.add_audit_log(normalize_audit_log(created or entry))
