"""
Tests for PatentVault monitoring: metrics, structured logging and request middleware.
"""

import json
import logging
import os
import sys

import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from monitoring import LoggingContext, MetricsCollector, counted, metrics, timed
from monitoring.logging import (
    ConsoleFormatter,
    JSONFormatter,
    clear_request_context,
    get_request_context,
    redact_sensitive_data,
    redact_string,
)
from monitoring.middleware import normalize_path


def _record(msg, level=logging.INFO, **extra):
    record = logging.LogRecord("patentvault.test", level, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestMetricsCollector:
    """Tests for counters, gauges and histograms."""

    @pytest.fixture
    def collector(self):
        return MetricsCollector()

    def test_counter(self, collector):
        collector.increment("uploads")
        collector.increment("uploads", 2)
        assert collector.get_counter("uploads") == 3

    def test_labelled_counter(self, collector):
        collector.increment("proofs", labels={"type": "range"})
        collector.increment("proofs", labels={"type": "knowledge"})
        assert collector.get_counter("proofs", labels={"type": "range"}) == 1
        assert collector.get_counter("proofs") == 0

    def test_gauge(self, collector):
        collector.set_gauge("active", 5)
        collector.increment_gauge("active")
        collector.decrement_gauge("active", 2)
        assert collector.get_gauge("active") == 4

    def test_histogram(self, collector):
        collector.timing("latency", 7)
        collector.timing("latency", 300)

        hist = collector.get_all()["histograms"]["latency"]["_total"]
        assert hist["count"] == 2
        assert hist["sum"] == 307
        assert hist["buckets"]["10"] == 1
        assert hist["buckets"]["500"] == 2
        assert hist["buckets"]["+Inf"] == 2

    def test_timer(self, collector):
        with collector.timer("block"):
            pass
        assert collector.get_all()["histograms"]["block"]["_total"]["count"] == 1

    def test_get_all_collapses_unlabelled(self, collector):
        collector.increment("plain")
        collector.increment("labelled", labels={"a": "b"})
        counters = collector.get_all()["counters"]
        assert counters["plain"] == 1
        assert counters["labelled"] == {'a="b"': 1}

    def test_prometheus_format(self, collector):
        collector.increment("uploads_total", labels={"encrypted": "true"})
        collector.set_gauge("patents_total", 3)
        collector.timing("register_ms", 20)

        text = collector.to_prometheus()

        assert "# TYPE patentvault_uploads_total counter" in text
        assert 'patentvault_uploads_total{encrypted="true"} 1' in text
        assert "patentvault_patents_total 3" in text
        assert 'patentvault_register_ms_bucket{le="25"} 1' in text
        assert "patentvault_register_ms_count 1" in text

    def test_reset(self, collector):
        collector.increment("x")
        collector.reset()
        assert collector.get_counter("x") == 0


class TestDecorators:
    """Tests for the timed and counted decorators."""

    def test_counted(self):
        @counted("calls_total", labels={"kind": "test"})
        def work():
            return "done"

        assert work() == "done"
        work()
        assert metrics.get_counter("calls_total", labels={"kind": "test"}) == 2

    def test_counted_default_name(self):
        @counted()
        def something():
            pass

        something()
        assert metrics.get_counter("function_something_total") == 1

    def test_timed_records_on_error(self):
        @timed("failing_ms")
        def fail():
            raise RuntimeError("nope")

        with pytest.raises(RuntimeError):
            fail()
        assert metrics.get_all()["histograms"]["failing_ms"]["_total"]["count"] == 1

    def test_wraps_preserves_name(self):
        @timed()
        def named():
            pass

        assert named.__name__ == "named"


class TestRedaction:
    """Tests for removing secrets from log output."""

    def test_password_pair(self):
        assert redact_string("password=hunter2 ok") == "password=[REDACTED] ok"

    def test_json_style_pair(self):
        redacted = redact_string('{"encryptionKey": "abcdef"}')
        assert "abcdef" not in redacted

    def test_bearer_token(self):
        assert "tok123" not in redact_string("Authorization: Bearer tok123")

    def test_wallet_address_shortened(self):
        address = "0x" + "1234" + "a" * 32 + "5678"
        assert redact_string(f"inventor {address}") == "inventor 0x1234...5678"

    def test_nested_fields(self):
        data = {"title": "Widget", "nested": {"randomness": "ff", "items": [{"password": "x"}]}}
        redacted = redact_sensitive_data(data)
        assert redacted["title"] == "Widget"
        assert redacted["nested"]["randomness"] == "[REDACTED]"
        assert redacted["nested"]["items"][0]["password"] == "[REDACTED]"

    def test_header_style_key(self):
        assert redact_sensitive_data({"X-API-Key": "k"}) == {"X-API-Key": "[REDACTED]"}

    def test_max_depth(self):
        assert redact_sensitive_data({"a": 1}, depth=11) == "[MAX_DEPTH_EXCEEDED]"


class TestFormatters:
    """Tests for JSON and console log formatting."""

    @pytest.fixture(autouse=True)
    def clean_context(self):
        clear_request_context()
        yield
        clear_request_context()

    def test_json_formatter(self):
        entry = json.loads(JSONFormatter().format(_record("Stored 10 bytes", cid="bafkreiabc")))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "patentvault.test"
        assert entry["message"] == "Stored 10 bytes"
        assert entry["cid"] == "bafkreiabc"
        assert "location" not in entry

    def test_json_formatter_redacts(self):
        record = _record("login password=hunter2", encryption_key="abc")
        entry = json.loads(JSONFormatter().format(record))
        assert "hunter2" not in entry["message"]
        assert entry["encryption_key"] == "[REDACTED]"

    def test_json_formatter_warning_location(self):
        entry = json.loads(JSONFormatter().format(_record("careful", level=logging.WARNING)))
        assert entry["location"]["line"] == 1

    def test_json_formatter_context(self):
        with LoggingContext(request_id="abc123"):
            entry = json.loads(JSONFormatter().format(_record("hello")))
        assert entry["context"] == {"request_id": "abc123"}

    def test_console_formatter(self):
        line = ConsoleFormatter().format(_record("hello", status_code=200))
        assert "[patentvault.test]" in line
        assert "hello" in line
        assert "status_code=200" in line


class TestLoggingContext:
    """Tests for nested logging context."""

    @pytest.fixture(autouse=True)
    def clean_context(self):
        clear_request_context()
        yield
        clear_request_context()

    def test_nested_context_restored(self):
        with LoggingContext(request_id="outer"):
            with LoggingContext(patent_id="1"):
                assert get_request_context() == {"request_id": "outer", "patent_id": "1"}
            assert get_request_context() == {"request_id": "outer"}
        assert get_request_context() == {}


class TestNormalizePath:
    """Tests for metric label normalization."""

    @pytest.mark.parametrize("path,expected", [
        ("/", "/"),
        ("/health", "/health"),
        ("/api/patent/1700000000000", "/api/patent/:id"),
        ("/api/ipfs/download/bafkreibm6jg3ux5qumhcn2b3flc3tyu6dmlb4xa7u5bf44yegnrjhc4yeq",
         "/api/ipfs/download/:cid"),
        ("/api/ipfs/stats/QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG", "/api/ipfs/stats/:cid"),
        ("/api/x/" + "a" * 64, "/api/x/:hash"),
    ])
    def test_normalize(self, path, expected):
        assert normalize_path(path) == expected


class TestRequestMiddleware:
    """Tests for request logging and metrics on the Flask app."""

    def test_request_counted(self, flask_client):
        flask_client.get("/health/live")
        assert metrics.get_counter(
            "http_requests_total",
            labels={"method": "GET", "path": "/health/live", "status": "200"},
        ) == 1

    def test_request_id_generated(self, flask_client):
        response = flask_client.get("/health/live")
        assert len(response.headers["X-Request-ID"]) == 8

    def test_active_requests_back_to_zero(self, flask_client):
        flask_client.get("/health/live")
        assert metrics.get_gauge("http_requests_active") == 0

    def test_metrics_endpoint(self, flask_client):
        flask_client.get("/health/live")
        response = flask_client.get("/metrics")
        assert response.status_code == 200
        assert response.mimetype == "text/plain"
        text = response.get_data(as_text=True)
        assert "patentvault_http_requests_total" in text
        assert "patentvault_storage_available 1" in text

    def test_metrics_json(self, flask_client):
        data = flask_client.get("/metrics/json").get_json()
        assert data["gauges"]["patents_total"] == 0
        assert "uptime_seconds" in data
