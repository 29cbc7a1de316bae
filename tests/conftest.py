"""
Shared pytest fixtures for the Project Pulse test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - api_session: requests-like session that routes into the test client
    - gateway: PulseGateway talking to the test app through api_session
    - team / admin_user: pre-created Team and MD user (password "secret")
"""

from urllib.parse import urlsplit

import pytest

from pulse import create_app
from pulse.integrations.pulse_gateway import PulseGateway
from pulse.models import db as _db

BASE_URL = "http://pulse.test"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Gateway over the test client ─────────────────────────────────────────


class _Response:
    def __init__(self, status_code, reason, text):
        self.status_code = status_code
        self.reason = reason
        self.text = text


class FlaskClientSession:
    """Stands in for requests.Session; every call hits the Flask test client.

    ``calls`` records (method, path, json) for assertions on what was sent.
    """

    def __init__(self, client):
        self.client = client
        self.calls = []
        self.fail_next = None

    def request(self, method, url, headers=None, timeout=None, json=None):
        parts = urlsplit(url)
        path = parts.path + (f"?{parts.query}" if parts.query else "")
        self.calls.append((method, path, json))
        if self.fail_next is not None and self.fail_next(method, path):
            self.fail_next = None
            return _Response(503, "Service Unavailable", "backend down")
        resp = self.client.open(path, method=method, json=json, headers=headers)
        reason = resp.status.partition(" ")[2]
        return _Response(resp.status_code, reason, resp.get_data(as_text=True))

    def close(self):
        pass


@pytest.fixture()
def api_session(client):
    return FlaskClientSession(client)


@pytest.fixture()
def gateway(api_session):
    return PulseGateway(BASE_URL, timeout=5, session=api_session)


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def team(client):
    res = client.post("/api/teams", json={"name": "Core", "description": "Core team"})
    assert res.status_code == 201
    return res.get_json()


@pytest.fixture()
def admin_user(client, team):
    res = client.post("/api/users", json={
        "name": "admin", "role": "MD", "password": "secret", "team_id": team["id"],
    })
    assert res.status_code == 201
    return res.get_json()
