"""
Project Pulse REST gateway.

All outbound HTTP calls from the sync client go through this class.
Server shape translation for writes (``lead_id`` → ``owner_id``, numeric
ids, fields the backend does not accept on update) lives here; read-side
translation lives in ``pulse.sync.normalizer``.

  - Timeout: ``PULSE_REQUEST_TIMEOUT`` seconds (default 30) per call
  - No retry, no backoff, no circuit breaker: every failure is raised as
    ``RemoteCallError`` and is terminal for the attempted operation
  - Non-2xx bodies are quoted up to 200 characters in the error message

Testability: pass a mock `session` to PulseGateway() in tests instead of
letting it create a real requests.Session internally.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import date, datetime
from enum import Enum
from typing import Any

import requests

from pulse.core.exceptions import RemoteCallError

logger = logging.getLogger(__name__)

# ── Defaults ─────────────────────────────────────────────────────────────────
_DEFAULT_TIMEOUT = 30
_ERROR_BODY_CHARS = 200
_INVALID_JSON_CHARS = 120

# Client-only project fields the backend ignores on update.
_PROJECT_UPDATE_STRIP = ("parent_id", "parentId", "weight", "frequency", "frequency_detail", "frequencyDetail")


def _wire_id(value):
    """Send numeric-looking ids as integers, anything else unchanged."""
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.lstrip("-").isdigit():
            return int(stripped)
    return value


def _jsonable(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def project_payload(fields: dict, *, for_update: bool) -> dict:
    """Translate client project fields into the backend's write shape."""
    payload = dict(fields)
    payload.pop("id", None)
    for alias in ("lead_id", "leadId"):
        if alias in payload:
            lead = payload.pop(alias)
            if lead is not None:
                payload["owner_id"] = lead
    if "teamId" in payload:
        team = payload.pop("teamId")
        if team is not None and payload.get("team_id") is None:
            payload["team_id"] = team
    for key in ("owner_id", "team_id", "parent_id"):
        if payload.get(key) is not None:
            payload[key] = _wire_id(payload[key])
    if for_update:
        for key in _PROJECT_UPDATE_STRIP:
            payload.pop(key, None)
    return _jsonable(payload)


class PulseGateway:
    """REST client for the Project Pulse backend.

    Usage:
        gateway = PulseGateway("http://localhost:3001", timeout=30)
        projects = gateway.list("projects")
        gateway.update_project("7", {"status": "Started", "lead_id": "3"})
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: int | float = _DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        # Inject custom session for testing; create real one lazily otherwise.
        self._session: requests.Session | None = session

    @classmethod
    def from_config(cls, cfg, session: requests.Session | None = None) -> PulseGateway:
        return cls(
            getattr(cfg, "PULSE_API_BASE_URL", "http://localhost:3001"),
            timeout=getattr(cfg, "PULSE_REQUEST_TIMEOUT", _DEFAULT_TIMEOUT),
            session=session,
        )

    # ── HTTP session ─────────────────────────────────────────────────────────

    @property
    def session(self) -> requests.Session:
        """Return (or lazily create) the requests.Session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def close(self) -> None:
        if self._session is not None:
            self._session.close()

    # ── Core request dispatcher ──────────────────────────────────────────────

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api/{path.lstrip('/')}"

    def _send(self, method: str, url: str, json_body: Any = None) -> requests.Response:
        kwargs: dict[str, Any] = {
            "headers": {"Accept": "application/json"},
            "timeout": self.timeout,
        }
        if json_body is not None:
            kwargs["json"] = _jsonable(json_body)
        t0 = time.perf_counter()
        try:
            resp = self.session.request(method, url, **kwargs)
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise RemoteCallError(f"Network error calling {url}: {exc}") from exc
        duration_ms = (time.perf_counter() - t0) * 1000
        logger.debug(
            "%s %s -> %s", method, url, resp.status_code,
            extra={"method": method, "path": url, "status": resp.status_code, "duration_ms": duration_ms},
        )
        return resp

    def request(self, method: str, path: str, json_body: Any = None) -> Any:
        """Execute one request and return the parsed JSON body.

        Raises:
            RemoteCallError: network failure, non-2xx status, or a body that
                is not valid JSON.
        """
        url = self._url(path)
        resp = self._send(method, url, json_body)
        text = resp.text or ""
        if not 200 <= resp.status_code < 300:
            reason = getattr(resp, "reason", "") or ""
            status = f"{resp.status_code} {reason}".strip()
            raise RemoteCallError(
                f"HTTP {status} at {url}: {text[:_ERROR_BODY_CHARS]}",
                resp.status_code,
            )
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except ValueError as exc:
            raise RemoteCallError(
                f"Invalid JSON from {url}. First bytes: {text[:_INVALID_JSON_CHARS]}",
                resp.status_code,
            ) from exc

    # ── Generic resource operations ──────────────────────────────────────────

    def list(self, resource: str) -> list:
        data = self.request("GET", resource)
        return data if isinstance(data, list) else []

    def create(self, resource: str, body: dict) -> dict:
        return self.request("POST", resource, body)

    def update(self, resource: str, entity_id, body: dict) -> dict:
        return self.request("PUT", f"{resource}/{entity_id}", body)

    def delete(self, resource: str, entity_id) -> Any:
        return self.request("DELETE", f"{resource}/{entity_id}")

    # ── Projects ─────────────────────────────────────────────────────────────

    def create_project(self, fields: dict) -> dict:
        return self.create("projects", project_payload(fields, for_update=False))

    def update_project(self, project_id, fields: dict) -> dict:
        return self.update("projects", project_id, project_payload(fields, for_update=True))

    def delete_project(self, project_id) -> list[str]:
        """Delete a project; returns every deleted project id (descendants too)."""
        data = self.delete("projects", project_id)
        if not isinstance(data, dict):
            data = {}
        ids = data.get("deleted_project_ids") or data.get("deletedProjectIds") or [project_id]
        return [str(i) for i in ids]

    # ── Singletons / special endpoints ───────────────────────────────────────

    def get_system_configuration(self) -> dict:
        return self.request("GET", "system-configuration") or {}

    def get_member_performance(self, member_id) -> dict:
        return self.request("GET", f"users/{member_id}/performance") or {}

    def add_audit_log(self, entry: dict) -> dict:
        return self.create("audit-logs", entry)

    def authenticate(self, username: str, password: str) -> dict:
        """Exchange credentials for a user record.

        Raises:
            RemoteCallError: with the server's plain-text message on failure.
        """
        url = self._url("auth/login")
        resp = self._send("POST", url, {"username": username, "password": password})
        text = resp.text or ""
        if not 200 <= resp.status_code < 300:
            raise RemoteCallError(text.strip() or "Login failed", resp.status_code)
        try:
            return json.loads(text)
        except ValueError as exc:
            raise RemoteCallError(
                f"Invalid JSON from {url}. First bytes: {text[:_INVALID_JSON_CHARS]}",
                resp.status_code,
            ) from exc
