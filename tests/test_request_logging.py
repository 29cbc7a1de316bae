"""
Request timing and structured log output.
"""

import json
import logging

from pulse.middleware.logging_config import JSONFormatter


def test_request_id_echoed_and_logged(client, caplog):
    with caplog.at_level(logging.DEBUG, logger="pulse.middleware.timing"):
        res = client.get("/api/projects", headers={"X-Request-ID": "req-123"})

    assert res.headers["X-Request-ID"] == "req-123"
    assert "X-Request-Duration-Ms" in res.headers
    records = [r for r in caplog.records if getattr(r, "path", None) == "/api/projects"]
    assert records
    assert records[0].request_id == "req-123"


def test_request_id_generated_when_absent(client):
    res = client.get("/api/projects")
    assert len(res.headers["X-Request-ID"]) == 12


def test_json_formatter_carries_request_fields():
    record = logging.LogRecord("pulse.test", logging.INFO, __file__, 1, "GET %s", ("/x",), None)
    record.request_id = "abc"
    record.status = 200
    entry = json.loads(JSONFormatter().format(record))
    assert entry["message"] == "GET /x"
    assert entry["request_id"] == "abc"
    assert entry["status"] == 200
    assert "project_id" not in entry
