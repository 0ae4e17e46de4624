"""Unit tests for request correlation, JSON logging and health checks"""

import json
import logging

from incorpflow.observability.health import (
    ComponentHealth,
    HealthStatus,
    check_database_health,
    get_overall_health,
)
from incorpflow.observability.logging_config import JSONFormatter, RequestIDFilter
from incorpflow.observability.request_id import get_request_id, resolve_request_id, set_request_id


class TestRequestId:

    def test_reuses_sane_client_id(self):
        assert resolve_request_id("req-42.a:b") == "req-42.a:b"

    def test_replaces_bad_client_id(self):
        generated = resolve_request_id("bad id\nwith newline")
        assert generated != "bad id\nwith newline"
        assert len(generated) == 36

    def test_missing_header(self):
        assert len(resolve_request_id(None)) == 36

    def test_context_value(self):
        set_request_id("abc")
        assert get_request_id() == "abc"


class TestJSONFormatter:

    def test_includes_request_id_and_context(self):
        set_request_id("req-1")
        record = logging.LogRecord("incorpflow.test", logging.INFO, __file__, 1, "stored %s", ("x",), None)
        record.registration_id = "reg_1"
        record.storage_key = "documents/a.pdf"
        RequestIDFilter().filter(record)

        line = json.loads(JSONFormatter().format(record))

        assert line["message"] == "stored x"
        assert line["level"] == "INFO"
        assert line["request_id"] == "req-1"
        assert line["registration_id"] == "reg_1"
        assert line["storage_key"] == "documents/a.pdf"
        assert "slot" not in line


class TestHealth:

    def test_database_healthy(self, db):
        health = check_database_health(db)
        assert health.status == HealthStatus.HEALTHY

    def test_overall_health(self):
        healthy = ComponentHealth(status=HealthStatus.HEALTHY)
        degraded = ComponentHealth(status=HealthStatus.DEGRADED)
        unhealthy = ComponentHealth(status=HealthStatus.UNHEALTHY)

        assert get_overall_health({"a": healthy, "b": healthy}) == HealthStatus.HEALTHY
        assert get_overall_health({"a": healthy, "b": degraded}) == HealthStatus.DEGRADED
        assert get_overall_health({"a": degraded, "b": unhealthy}) == HealthStatus.UNHEALTHY
