"""
Mutation coordinator.

Every user-facing write goes through ``MutationCoordinator``. Each operation
validates its input, calls the gateway, normalizes the response, commits it
to the store and returns the value; side effects (notifications, audit
entries) are collected in a ``MutationOutcome`` and run by the
``EffectDispatcher`` after the commit.

Failure semantics:
    ValidationError / NotFoundError   raised before any request
    RemoteCallError                   propagates; nothing is committed
    project_timer_action              commits optimistically and restores
                                      the previous project on failure

Usage:
    coordinator = MutationCoordinator(store, gateway, dispatcher, actor=lambda: user)
    coordinator.project_timer_action("7", "hold")
    coordinator.update_task("12", {"assignee_id": "3"})
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import asdict, is_dataclass, replace
from enum import Enum

from pulse.core.exceptions import NotFoundError, RemoteCallError, RollupError, ValidationError
from pulse.sync.effects import Audit, EffectDispatcher, MutationOutcome, Notify, utcnow
from pulse.sync.entities import (
    BLOCKED_REASONS,
    Project,
    ProjectFrequency,
    ProjectStatus,
    Role,
    TaskStatus,
    TaskType,
    TeamMember,
    ToDoFrequency,
    UsageEntry,
)
from pulse.sync.normalizer import (
    normalize_department,
    normalize_leave,
    normalize_member,
    normalize_project,
    normalize_project_phase,
    normalize_risk_level,
    normalize_task,
    normalize_team,
    normalize_todo,
    normalize_tool,
    normalize_many,
)
from pulse.sync.recurrence import next_due_date
from pulse.sync.timer import TimerAction, plan_transition
from pulse.sync.views import compute_parent_status

logger = logging.getLogger(__name__)

# Kept locally: the gateway strips them from project updates.
CLIENT_ONLY_PROJECT_FIELDS = ("parent_id", "weight", "frequency", "frequency_detail")

COMPLETED_PROJECT_STATUSES = (
    ProjectStatus.COMPLETED,
    ProjectStatus.COMPLETED_BLOCKED,
    ProjectStatus.COMPLETED_NOT_SATISFIED,
)

OTHER_REASON = "Other"

# Settings kind -> (REST resource, normalizer)
SETTINGS_RESOURCES = {
    "departments": ("departments", normalize_department),
    "project_phases": ("project-phases", normalize_project_phase),
    "risk_levels": ("risk-levels", normalize_risk_level),
}


def _plain(value):
    """Dataclasses, enums and containers -> JSON-ready plain values."""
    if is_dataclass(value) and not isinstance(value, type):
        return _plain(asdict(value))
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _positive_id(value) -> bool:
    try:
        return float(str(value).strip()) > 0
    except (TypeError, ValueError):
        return False


def _project_link(project_id) -> str:
    return f"project:{project_id}"


def _merged(normalize, response, local, updates: dict):
    """Normalize a PUT response; an empty body falls back to *local* + *updates*."""
    if response:
        entity = normalize(response)
    else:
        entity = normalize({**asdict(local), **updates})
    if entity.id is None:
        entity = replace(entity, id=local.id)
    return entity


class MutationCoordinator:
    """
    Orchestrates writes: request, normalize, commit, then effects.

    Args:
        store: DomainStore to commit into.
        gateway: PulseGateway for remote calls.
        dispatcher: EffectDispatcher that runs post-commit effects.
        actor: Callable returning the logged-in TeamMember (or None).
        clock: Callable returning the current aware UTC datetime.
        on_actor_changed: Called with the refreshed member when the
            logged-in user's own record changes.
    """

    def __init__(
        self,
        store,
        gateway,
        dispatcher: EffectDispatcher,
        actor: Callable[[], TeamMember | None],
        clock=utcnow,
        on_actor_changed: Callable[[TeamMember], None] | None = None,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.dispatcher = dispatcher
        self.actor = actor
        self.clock = clock
        self.on_actor_changed = on_actor_changed

    # ── Plumbing ─────────────────────────────────────────────────────────────

    def _finish(self, outcome: MutationOutcome):
        self.dispatcher.dispatch(outcome.effects)
        return outcome.value

    def _require(self, kind: str, entity_id, label: str):
        entity = self.store.get(kind, entity_id)
        if entity is None:
            raise NotFoundError(resource=label, resource_id=entity_id)
        return entity

    def _require_actor(self) -> TeamMember:
        user = self.actor()
        if user is None:
            raise ValidationError("You must be logged in to do this.")
        return user

    def _now_iso(self) -> str:
        return self.clock().isoformat()

    def _member(self, member_id) -> TeamMember | None:
        if member_id is None:
            return None
        return self.store.members_by_id.get(str(member_id))

    # ═════════════════════════════════════════════════════════════════════════
    # Projects
    # ═════════════════════════════════════════════════════════════════════════

    def _merge_project_response(self, response, local: Project, updates: dict) -> Project:
        merged = _merged(normalize_project, response, local, updates)
        kept = {}
        for key in CLIENT_ONLY_PROJECT_FIELDS:
            source = normalize_project({key: updates[key]}) if key in updates else local
            kept[key] = getattr(source, key)
        return replace(merged, **kept)

    def add_project(self, fields: dict) -> Project:
        """Create a project; notifies the lead when someone else creates it.

        Raises:
            ValidationError: missing name or no valid team selected.
        """
        name = (fields.get("name") or "").strip()
        if not name:
            raise ValidationError("Project name is required.", {"name": "required"})
        team_id = fields.get("team_id", fields.get("teamId"))
        if not _positive_id(team_id):
            raise ValidationError("Please select a valid team before submitting.", {"team_id": "invalid"})
        parent_id = fields.get("parent_id")
        if parent_id is not None:
            self._require("projects", parent_id, "Parent project")
            try:
                weight = float(fields.get("weight"))
            except (TypeError, ValueError):
                weight = None
            if weight is None or not 1 <= weight <= 100:
                raise ValidationError("Sub-project weight must be between 1 and 100.", {"weight": "invalid"})

        body = {
            "name": name,
            "description": fields.get("description") or "",
            "end_date": fields.get("end_date"),
            "status": ProjectStatus.NOT_STARTED.value,
            "lead_id": fields.get("lead_id"),
            "team_id": str(team_id),
            "allocated_hours": fields.get("allocated_hours") or 0,
            "used_hours": 0,
            "created_at": self._now_iso(),
        }
        for key in ("parent_id", "weight", "users", "frequency", "frequency_detail", "expected_saved_hours"):
            if fields.get(key) is not None:
                body[key] = _plain(fields[key])

        created = self.gateway.create_project(body)
        project = normalize_project(created)
        if project.lead_id is None and body["lead_id"] is not None:
            project = replace(project, lead_id=str(body["lead_id"]))
        if project.parent_id is None and body.get("parent_id") is not None:
            project = replace(project, parent_id=str(body["parent_id"]))
        self.store.upsert("projects", project)
        logger.info("Project %s created: %s", project.id, project.name)

        effects = [Audit("Create Project", f'created new project "{project.name}"', project.id)]
        user = self.actor()
        lead = self._member(project.lead_id)
        if lead is not None and (user is None or lead.id != user.id):
            actor_name = user.name if user is not None else "Someone"
            effects.append(Notify(
                lead.id,
                f'{actor_name} created "{project.name}" and assigned you as project lead.',
                _project_link(project.id),
            ))
        return self._finish(MutationOutcome(project, effects))

    def update_project(self, project_id, updates: dict) -> Project:
        """PUT the changes, then roll the parent's status up from its children.

        The parent is only written when its computed status differs; child
        and parent are committed together in one store transaction.

        Raises:
            RollupError: the child was saved and committed but the parent PUT
                failed.
        """
        local = self._require("projects", project_id, "Project")
        updates = _plain(dict(updates))
        response = self.gateway.update_project(local.id, updates)
        updated = self._merge_project_response(response, local, updates)

        parent_updated = None
        parent = self.store.get("projects", updated.parent_id)
        if parent is not None:
            siblings = [c for c in self.store.children_by_parent.get(parent.id, ()) if c.id != updated.id]
            siblings.append(updated)
            status = compute_parent_status(siblings)
            if parent.status != status:
                logger.info("Rolling up parent %s: %s -> %s", parent.id, parent.status, status)
                try:
                    parent_response = self.gateway.update_project(parent.id, {"status": status})
                except RemoteCallError as exc:
                    self.store.upsert("projects", updated)
                    raise RollupError(
                        f"Project saved but parent roll-up failed: {exc}", exc.status_code, updated,
                    ) from exc
                parent_updated = self._merge_project_response(parent_response, parent, {"status": status})

        with self.store.transaction():
            self.store.upsert("projects", updated)
            if parent_updated is not None:
                self.store.upsert("projects", parent_updated)

        changed = ", ".join(updates)
        return self._finish(MutationOutcome(updated, [
            Audit("Update Project", f"updated fields: {changed}", updated.id),
        ]))

    def project_timer_action(self, project_id, action) -> Project:
        """Apply a timer action optimistically.

        The local project is updated before the request; if the project's own
        request fails the pre-transition project is restored and the error
        re-raised. A failed parent roll-up keeps the saved project.

        Raises:
            ValidationError: *action* is not start, resume, hold or end.
        """
        try:
            action = TimerAction(action)
        except ValueError:
            raise ValidationError(f"Unknown timer action: {action!r}") from None
        snapshot = self._require("projects", project_id, "Project")
        updates = plan_transition(snapshot, action, self.clock())

        self.store.upsert("projects", replace(snapshot, **updates))
        try:
            updated = self.update_project(snapshot.id, updates)
        except RollupError as exc:
            logger.warning(
                "Timer %s saved for project %s but parent roll-up failed: %s", action.value, snapshot.id, exc,
                extra={"project_id": snapshot.id, "action": action.value},
            )
            raise
        except RemoteCallError as exc:
            logger.warning(
                "Timer %s failed for project %s, restoring: %s", action.value, snapshot.id, exc,
                extra={"project_id": snapshot.id, "action": action.value},
            )
            self.store.upsert("projects", snapshot)
            raise

        return self._finish(MutationOutcome(updated, [
            Audit("Update Project Timer", f"Timer action: {action.value}", snapshot.id),
        ]))

    def delete_project(self, project_id) -> list[str]:
        """Delete a project; its descendants and their tasks go with it."""
        project = self._require("projects", project_id, "Project")
        deleted_ids = self.gateway.delete_project(project.id)
        doomed = set(deleted_ids)
        with self.store.transaction():
            self.store.remove("projects", deleted_ids)
            self.store.remove("tasks", [t.id for t in self.store.tasks if t.project_id in doomed])
        logger.info("Deleted projects %s", deleted_ids)
        return self._finish(MutationOutcome(deleted_ids, [
            Audit(
                "Delete Project",
                f'Deleted project "{project.name}" and its descendants.',
                project.parent_id or project.id,
            ),
        ]))

    def complete_project(
        self,
        project_id,
        saved_hours: float,
        frequency,
        frequency_detail: str | None = None,
        triggering_sub_project_id=None,
    ) -> Project:
        """Mark a project Completed with its saved-time schedule.

        When the completion was triggered from a sub-project, that
        sub-project is completed afterwards.
        """
        self._require("projects", project_id, "Project")
        try:
            frequency = ProjectFrequency(frequency).value
        except ValueError:
            raise ValidationError(f"Unknown frequency: {frequency!r}", {"frequency": "invalid"}) from None
        if saved_hours is None or saved_hours < 0:
            raise ValidationError("Saved hours must be zero or more.", {"saved_hours": "invalid"})

        now = self._now_iso()
        updates = {
            "saved_hours": saved_hours,
            "frequency": frequency,
            "status": ProjectStatus.COMPLETED.value,
            "completed_at": now,
        }
        if frequency_detail is not None:
            updates["frequency_detail"] = frequency_detail
        project = self.update_project(project_id, updates)

        if triggering_sub_project_id:
            self.update_project(triggering_sub_project_id, {
                "status": ProjectStatus.COMPLETED.value,
                "completed_at": self._now_iso(),
            })
        return self.store.get("projects", project.id) or project

    def mark_not_satisfied(self, project_id, comments: str) -> Project:
        if not comments or not comments.strip():
            raise ValidationError("Comments are required.", {"comments": "required"})
        user = self._require_actor()
        self._require("projects", project_id, "Project")
        now = self._now_iso()
        feedback = {"rating": 1, "comments": comments.strip(), "author_id": user.id, "timestamp": now}
        return self.update_project(project_id, {
            "status": ProjectStatus.COMPLETED_NOT_SATISFIED.value,
            "end_user_feedback": feedback,
            "completed_at": now,
        })

    def mark_completed_blocked(self, project_id, comments: str) -> Project:
        if not comments or not comments.strip():
            raise ValidationError("Comments are required.", {"comments": "required"})
        user = self._require_actor()
        self._require("projects", project_id, "Project")
        now = self._now_iso()
        comment = {"text": comments.strip(), "author_id": user.id, "timestamp": now}
        return self.update_project(project_id, {
            "status": ProjectStatus.COMPLETED_BLOCKED.value,
            "latest_comments": comment,
            "completed_at": now,
        })

    def select_tools(self, project_id, status, tool_ids: Iterable) -> Project:
        """Move a project to *status* recording the tools it used."""
        return self.update_project(project_id, {
            "status": _plain(status),
            "tools_used": [str(t) for t in tool_ids],
        })

    def _append_usage(self, project: Project, user: TeamMember, saved_hours: float, now: str) -> dict:
        usage = list(project.last_used_by) + [UsageEntry(user_id=user.id, date=now, saved_hours=saved_hours)]
        return {
            "last_used_by": _plain(usage),
            "saved_hours": (project.saved_hours or 0.0) + saved_hours,
        }

    def log_project_usage(self, project_id, saved_hours: float) -> Project:
        """Record one use of a completed project.

        Raises:
            ValidationError: the project is not in a completed status.
        """
        user = self._require_actor()
        project = self._require("projects", project_id, "Project")
        if project.status not in COMPLETED_PROJECT_STATUSES:
            raise ValidationError(
                "Saved time can only be logged for completed projects. Please complete the project first."
            )
        updated = self.update_project(project.id, self._append_usage(project, user, saved_hours, self._now_iso()))
        return self._finish(MutationOutcome(updated, [
            Audit("Log Project Usage", f'logged {saved_hours} saved hours for "{project.name}"', project.id),
        ]))

    def _beneficiaries(self, project: Project) -> str:
        names = []
        for user in project.users:
            if user.type == "user":
                member = self._member(user.id)
                if member is not None:
                    names.append(member.name)
            else:
                team = self.store.get("teams", user.id)
                if team is not None:
                    names.append(f"Team {team.name}")
        return ", ".join(names) or "N/A"

    def log_saved_time(self, logs: Iterable[tuple]) -> list[Project]:
        """Record saved hours for several due projects.

        *logs* holds ``(project_id, saved_hours)`` pairs; unknown projects are
        skipped.
        """
        user = self._require_actor()
        now = self.clock()
        updated = []
        for project_id, saved_hours in logs:
            project = self.store.get("projects", project_id)
            if project is None:
                logger.warning("Saved-time log for unknown project %s skipped", project_id)
                continue
            result = self.update_project(project.id, self._append_usage(project, user, saved_hours, now.isoformat()))
            details = (
                f'Logged {saved_hours:.1f} saved hours for "{project.name}". '
                f"Beneficiaries: {self._beneficiaries(project)}. "
                f"Logged by {user.name} on {now.strftime('%Y-%m-%d')}."
            )
            updated.append(self._finish(MutationOutcome(result, [
                Audit("Log Project Usage", details, project.id),
            ])))
        return updated

    # ═════════════════════════════════════════════════════════════════════════
    # Tasks, risks and issues
    # ═════════════════════════════════════════════════════════════════════════

    def update_task(self, task_id, updates: dict):
        """PUT task changes.

        Completing an issue notifies the project lead; assigning the task to
        a different member notifies the new assignee.
        """
        old = self._require("tasks", task_id, "Task")
        updates = _plain(dict(updates))
        response = self.gateway.update("tasks", old.id, updates)
        task = _merged(normalize_task, response, old, updates)
        self.store.upsert("tasks", task)

        effects = []
        project = self.store.get("projects", task.project_id or old.project_id)
        if (
            updates.get("status") == TaskStatus.COMPLETED.value
            and old.status != TaskStatus.COMPLETED
            and old.type == TaskType.ISSUE
        ):
            lead = self._member(project.lead_id) if project is not None else None
            if lead is not None:
                effects.append(Notify(
                    lead.id,
                    f'Issue "{task.title}" in project "{project.name}" has been resolved.',
                    _project_link(project.id),
                ))

        new_assignee = updates.get("assignee_id")
        if new_assignee and str(new_assignee) != old.assignee_id:
            assignee = self._member(new_assignee)
            if assignee is not None and project is not None:
                effects.append(Notify(
                    assignee.id,
                    f'You have been assigned a {task.type or TaskType.TASK.value}: '
                    f'"{task.title}" in project "{project.name}".',
                    _project_link(project.id),
                ))

        changed = ", ".join(updates)
        effects.append(Audit("Update Task", f'updated "{old.title}" with new: {changed}', old.project_id))
        return self._finish(MutationOutcome(task, effects))

    def complete_task(self, task_id, time_spent: float, time_saved: float, completion_reference: str = ""):
        now = self._now_iso()
        return self.update_task(task_id, {
            "status": TaskStatus.COMPLETED.value,
            "time_spent": time_spent,
            "time_saved": time_saved,
            "completed_at": now,
            "last_updated": now,
            "completion_reference": completion_reference,
            "status_reason": "",
        })

    def save_risk_issue(self, data: dict, task_id=None):
        """Create or edit a risk or issue.

        Risks are raised with a reason: one of ``BLOCKED_REASONS`` or
        ``"Other"`` with ``other_reason`` text, and the reason becomes the
        title. New items notify the assignee and the project lead.

        Raises:
            ValidationError: missing title/reason, project or deadline.
        """
        task_type = _plain(data.get("type") or TaskType.ISSUE.value)
        if task_type not in (TaskType.RISK.value, TaskType.ISSUE.value):
            raise ValidationError(f"Unknown risk/issue type: {task_type!r}", {"type": "invalid"})
        is_risk = task_type == TaskType.RISK.value

        reason = None
        if is_risk and task_id is None:
            reason = data.get("reason")
            if reason == OTHER_REASON:
                reason = (data.get("other_reason") or "").strip()
                if not reason:
                    raise ValidationError('Please specify a reason for "Other"', {"other_reason": "required"})
            elif reason not in BLOCKED_REASONS:
                raise ValidationError("Please select a reason.", {"reason": "invalid"})
            title = reason
        else:
            title = (data.get("title") or "").strip()
        project_id = data.get("project_id")
        if not title or not project_id or not data.get("deadline"):
            raise ValidationError("A reason/title, project, and deadline are required.")
        self._require("projects", project_id, "Project")

        fields = {
            "title": title,
            "description": (data.get("description") or "").strip(),
            "type": task_type,
            "project_id": str(project_id),
            "priority": _plain(data.get("priority") or "Medium"),
            "severity": _plain(data.get("severity")),
            "deadline": _plain(data.get("deadline")),
            "assignee_id": data.get("assignee_id"),
        }
        if task_id is not None:
            return self.update_task(task_id, fields)

        fields.update({
            "status": TaskStatus.NOT_STARTED.value,
            "status_reason": reason,
            "difficulty": 5,
            "last_updated": self._now_iso(),
        })
        task = normalize_task(self.gateway.create("tasks", fields))
        self.store.upsert("tasks", task)

        label = "Blocked" if task.type == TaskType.RISK else (task.type or TaskType.TASK.value)
        effects = [Audit(f"Create {label}", f'created new {label}: "{task.title}"', task.project_id)]
        project = self.store.get("projects", task.project_id)
        user = self.actor()
        actor_id = user.id if user is not None else None
        if project is not None:
            assignee = self._member(task.assignee_id)
            if assignee is not None and assignee.id != actor_id:
                effects.append(Notify(
                    assignee.id,
                    f'You\'ve been assigned a new {label}: "{task.title}" in project "{project.name}".',
                    _project_link(project.id),
                ))
            lead = self._member(project.lead_id)
            if lead is not None and lead.id != task.assignee_id and lead.id != actor_id:
                effects.append(Notify(
                    lead.id,
                    f'A new {label} "{task.title}" was created in your project "{project.name}".',
                    _project_link(project.id),
                ))
        return self._finish(MutationOutcome(task, effects))

    def delete_task(self, task_id) -> None:
        task = self._require("tasks", task_id, "Task")
        self.gateway.delete("tasks", task.id)
        self.store.remove("tasks", [task.id])
        return self._finish(MutationOutcome(None, [
            Audit("Delete Task", f'deleted task "{task.title}"', task.project_id),
        ]))

    # ═════════════════════════════════════════════════════════════════════════
    # Members
    # ═════════════════════════════════════════════════════════════════════════

    def add_member(
        self,
        name: str,
        role,
        password: str,
        team_id=None,
        sub_team_leader_id=None,
        office_location: str | None = None,
    ) -> TeamMember:
        """Create a member, then reload members and teams."""
        name = (name or "").strip()
        if not name or not password:
            raise ValidationError("Name and password are required.")
        try:
            role = Role(role).value
        except ValueError:
            raise ValidationError(f"Unknown role: {role!r}", {"role": "invalid"}) from None

        body = {
            "name": name,
            "role": role,
            "password": password,
            "team_id": team_id,
            "sub_team_leader_id": sub_team_leader_id if role == Role.STAFF.value else None,
            "office_location": office_location,
        }
        member = normalize_member(self.gateway.create("users", body))
        members = normalize_many("members", self.gateway.list("users"))
        teams = normalize_many("teams", self.gateway.list("teams"))
        with self.store.transaction():
            self.store.replace_all("members", members)
            self.store.replace_all("teams", teams)
        return self._finish(MutationOutcome(member, [
            Audit("Add Member", f'added new member "{name}" with role {role}'),
        ]))

    def delete_member(self, member_id) -> None:
        member = self._require("members", member_id, "Member")
        self.gateway.delete("users", member.id)
        self.store.remove("members", [member.id])
        return self._finish(MutationOutcome(None, [
            Audit("Delete Member", f'deleted member "{member.name}"'),
        ]))

    def change_member_role(self, member_id, role) -> TeamMember:
        member = self._require("members", member_id, "Member")
        try:
            role = Role(role).value
        except ValueError:
            raise ValidationError(f"Unknown role: {role!r}", {"role": "invalid"}) from None
        response = self.gateway.update("users", member.id, {"role": role})
        updated = _merged(normalize_member, response, member, {"role": role})
        self.store.upsert("members", updated)

        user = self.actor()
        if user is not None and user.id == updated.id and self.on_actor_changed is not None:
            self.on_actor_changed(updated)
        return self._finish(MutationOutcome(updated, [
            Audit("Update Member Role", f'changed role for "{member.name}" to {role}'),
        ]))

    # ═════════════════════════════════════════════════════════════════════════
    # To-dos
    # ═════════════════════════════════════════════════════════════════════════

    def save_todo(self, data: dict, todo_id=None):
        """Create a to-do for the current user, or edit an existing one."""
        title = (data.get("title") or "").strip()
        if not title:
            raise ValidationError("Title is required.", {"title": "required"})
        fields = {k: _plain(v) for k, v in data.items() if k not in ("id", "owner_id", "created_at")}
        fields["title"] = title

        if todo_id is not None:
            existing = self._require("todos", todo_id, "ToDo")
            todo = _merged(normalize_todo, self.gateway.update("todos", existing.id, fields), existing, fields)
            self.store.upsert("todos", todo)
            return self._finish(MutationOutcome(todo, [Audit("Update ToDo", f'Updated to-do: "{todo.title}"')]))

        user = self._require_actor()
        fields["owner_id"] = user.id
        fields["created_at"] = self._now_iso()
        todo = normalize_todo(self.gateway.create("todos", fields))
        self.store.upsert("todos", todo)
        return self._finish(MutationOutcome(todo, [Audit("Create ToDo", f'Created to-do: "{todo.title}"')]))

    def update_todo(self, todo_id, updates: dict):
        """Patch a to-do.

        Completing a recurring (non-Once) to-do keeps it open: it records
        ``last_completed_at`` and moves ``due_date`` on by one period.
        """
        todo = self._require("todos", todo_id, "ToDo")
        updates = _plain(dict(updates))
        if updates.get("is_complete") and todo.frequency != ToDoFrequency.ONCE:
            now = self.clock()
            updates["is_complete"] = False
            updates["last_completed_at"] = now.isoformat()
            updates["due_date"] = next_due_date(todo.due_date, todo.frequency, now)
        response = self.gateway.update("todos", todo.id, updates)
        updated = _merged(normalize_todo, response, todo, updates)
        self.store.upsert("todos", updated)
        return self._finish(MutationOutcome(updated))

    def delete_todo(self, todo_id) -> None:
        todo = self._require("todos", todo_id, "ToDo")
        self.gateway.delete("todos", todo.id)
        self.store.remove("todos", [todo.id])
        return self._finish(MutationOutcome(None, [Audit("Delete ToDo", f'Deleted to-do: "{todo.title}"')]))

    # ═════════════════════════════════════════════════════════════════════════
    # Leave, teams, tools
    # ═════════════════════════════════════════════════════════════════════════

    def add_leave(self, data: dict):
        member_id = data.get("member_id")
        if not member_id or not data.get("start_date") or not data.get("end_date"):
            raise ValidationError("Member, start date and end date are required.")
        leave = normalize_leave(self.gateway.create("leaves", _plain(dict(data))))
        self.store.upsert("leave", leave)
        member = self._member(member_id)
        name = member.name if member is not None else member_id
        return self._finish(MutationOutcome(leave, [Audit("Log Leave", f'logged leave for "{name}"')]))

    def delete_leave(self, leave_id) -> None:
        leave = self._require("leave", leave_id, "Leave")
        self.gateway.delete("leaves", leave.id)
        self.store.remove("leave", [leave.id])

    def save_team(self, name: str, description: str = "", team_id=None):
        name = (name or "").strip()
        if not name:
            raise ValidationError("Team name is required.", {"name": "required"})
        body = {"name": name, "description": description or ""}
        if team_id is not None:
            existing = self._require("teams", team_id, "Team")
            team = _merged(normalize_team, self.gateway.update("teams", existing.id, body), existing, body)
            action, details = "Update Team", f'updated team "{team.name}"'
        else:
            team = normalize_team(self.gateway.create("teams", body))
            action, details = "Create Team", f'created new team "{team.name}"'
        self.store.upsert("teams", team)
        return self._finish(MutationOutcome(team, [Audit(action, details)]))

    def delete_team(self, team_id) -> None:
        team = self._require("teams", team_id, "Team")
        self.gateway.delete("teams", team.id)
        with self.store.transaction():
            self.store.remove("teams", [team.id])
            orphans = [m for m in self.store.members if m.team_id == team.id]
            if orphans:
                self.store.upsert_many("members", [replace(m, team_id=None) for m in orphans])
        return self._finish(MutationOutcome(None, [Audit("Delete Team", f'deleted team "{team.name}"')]))

    def save_tool(self, name: str, tool_id=None):
        name = (name or "").strip()
        if not name:
            raise ValidationError("Tool name is required.", {"name": "required"})
        if tool_id is not None:
            existing = self._require("tools", tool_id, "Tool")
            tool = _merged(normalize_tool, self.gateway.update("tools", existing.id, {"name": name}), existing, {"name": name})
        else:
            tool = normalize_tool(self.gateway.create("tools", {"name": name}))
        self.store.upsert("tools", tool)
        return tool

    def delete_tool(self, tool_id) -> None:
        tool = self._require("tools", tool_id, "Tool")
        self.gateway.delete("tools", tool.id)
        self.store.remove("tools", [tool.id])

    # ═════════════════════════════════════════════════════════════════════════
    # Settings lists
    # ═════════════════════════════════════════════════════════════════════════

    def _settings(self, kind: str):
        try:
            return SETTINGS_RESOURCES[kind]
        except KeyError:
            raise ValidationError(f"Unknown settings list: {kind!r}") from None

    def save_setting(self, kind: str, data: dict, entity_id=None):
        """Create or edit a department, project phase or risk level."""
        resource, normalize = self._settings(kind)
        body = {k: _plain(v) for k, v in data.items() if k != "id"}
        if entity_id is not None:
            existing = self._require(kind, entity_id, kind)
            response = self.gateway.update(resource, existing.id, body)
        else:
            response = self.gateway.create(resource, body)
        entity = normalize(response)
        self.store.upsert(kind, entity)
        return entity

    def delete_setting(self, kind: str, entity_id) -> None:
        resource, _ = self._settings(kind)
        entity = self._require(kind, entity_id, kind)
        self.gateway.delete(resource, entity.id)
        self.store.remove(kind, [entity.id])

    # ═════════════════════════════════════════════════════════════════════════
    # Notifications (client-only)
    # ═════════════════════════════════════════════════════════════════════════

    def mark_notification_read(self, notification_id):
        notification = self._require("notifications", notification_id, "Notification")
        if not notification.is_read:
            notification = replace(notification, is_read=True)
            self.store.upsert("notifications", notification)
        return notification

    def mark_all_notifications_read(self) -> int:
        """Mark the current user's notifications read; returns how many changed."""
        user = self.actor()
        if user is None:
            return 0
        unread = [n for n in self.store.notifications if n.recipient_id == user.id and not n.is_read]
        if unread:
            self.store.upsert_many("notifications", [replace(n, is_read=True) for n in unread])
        return len(unread)
