"""Tests for Prometheus exposition."""

import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from prometheus_client.parser import text_string_to_metric_families

from swarm_exporter.aggregator import SnapshotAggregator
from swarm_exporter.daemon.fetcher import ScrapeError
from swarm_exporter.exposition import SwarmCollector, build_registry, create_app
from swarm_exporter.models import Container, Service, SwarmState, Task

CHANGED_AT = datetime(2024, 1, 1, 12, 10, 30, tzinfo=timezone.utc)


def create_test_state() -> SwarmState:
    """Create a small swarm with one service and two containers."""
    return SwarmState(
        services=[
            Service(id="svc-web", name="web", image="nginx:1.25", replicas=3),
            Service(id="svc-agent", name="agent", image="agent:2"),
        ],
        tasks=[
            Task(id="t1", service_id="svc-web", state="running", timestamp=CHANGED_AT),
            Task(id="t2", service_id="svc-web", state="running", timestamp=CHANGED_AT),
        ],
        containers=[
            Container(id="c1", name="/web.1", status="running", health_status="healthy"),
            Container(id="c2", name="/agent.1", status="running"),
        ],
    )


class FakeStartResponse:
    """Records the status and headers passed by a WSGI app."""

    def __init__(self):
        self.status = None
        self.headers = None

    def __call__(self, status, headers):
        self.status = status
        self.headers = dict(headers)


def call_app(app, path):
    """Call a WSGI app with a GET request and return (start_response, body)."""
    start_response = FakeStartResponse()
    body = b"".join(app({"PATH_INFO": path, "REQUEST_METHOD": "GET"}, start_response))
    return start_response, body


def samples_by_name(text):
    """Parse exposition text into {name: [(labels, value), ...]}."""
    result = {}
    for family in text_string_to_metric_families(text):
        for sample in family.samples:
            result.setdefault(sample.name, []).append((sample.labels, sample.value))
    return result


@pytest.fixture
def source():
    """Create a mock state source."""
    source = MagicMock()
    source.fetch_state.return_value = create_test_state()
    return source


@pytest.fixture
def registry(source):
    """Create a registry around the mock source."""
    return build_registry(SnapshotAggregator(source))


class TestSwarmCollector:
    """Tests for SwarmCollector class."""

    def test_collect_groups_by_metric(self, source):
        """Test that observations become one gauge family per metric."""
        collector = SwarmCollector(SnapshotAggregator(source))

        families = {f.name: f for f in collector.collect()}

        assert families["swarm_service_tasks"].type == "gauge"
        assert len(families["swarm_service_info"].samples) == 2
        assert len(families["container_status"].samples) == 2
        assert len(families["container_health_status"].samples) == 1

    def test_collect_skips_empty_families(self, source):
        """Test that metrics with no samples are left out."""
        source.fetch_state.return_value = SwarmState(
            services=[Service(id="s", name="idle", image="x:1")]
        )
        collector = SwarmCollector(SnapshotAggregator(source))

        names = [f.name for f in collector.collect()]

        assert names == ["swarm_service_info"]

    def test_describe_does_not_scrape(self, source):
        """Test that registration does not query the daemon."""
        collector = SwarmCollector(SnapshotAggregator(source))

        names = [f.name for f in collector.describe()]

        assert len(names) == 6
        source.fetch_state.assert_not_called()

    def test_registry_has_no_default_collectors(self, registry):
        """Test that process and platform metrics are not exposed."""
        app = create_app(registry)
        _, body = call_app(app, "/metrics")

        assert b"process_" not in body
        assert b"python_info" not in body


class TestMetricsEndpoint:
    """Tests for the WSGI application."""

    def test_metrics_success(self, registry):
        """Test a successful scrape."""
        app = create_app(registry)

        start_response, body = call_app(app, "/metrics")

        assert start_response.status == "200 OK"
        assert start_response.headers["Content-Type"].startswith("text/plain")
        samples = samples_by_name(body.decode("utf-8"))
        assert samples["swarm_service_desired_replicas"] == [
            ({"service_name": "web"}, 3.0)
        ]
        assert samples["swarm_service_tasks"] == [
            ({"service_name": "web", "state": "running"}, 2.0)
        ]
        assert samples["swarm_service_change_time"] == [
            ({"service_name": "web"}, CHANGED_AT.timestamp())
        ]
        assert ({"service_name": "agent", "image": "agent:2"}, 1.0) in samples[
            "swarm_service_info"
        ]
        assert samples["container_health_status"] == [
            ({"container_health_status": "healthy", "container_name": "/web.1"}, 1.0)
        ]

    def test_metrics_scrape_error(self, registry, source):
        """Test that a failed scrape returns 503 and the app keeps serving."""
        app = create_app(registry)
        source.fetch_state.side_effect = ScrapeError("Error listing Swarm Services. boom")

        start_response, body = call_app(app, "/metrics")

        assert start_response.status == "503 Service Unavailable"
        assert b"Error listing Swarm Services." in body

        source.fetch_state.side_effect = None
        start_response, _ = call_app(app, "/metrics")
        assert start_response.status == "200 OK"

    def test_metrics_unexpected_error(self, registry, source):
        """Test that unexpected errors return 500."""
        app = create_app(registry)
        source.fetch_state.side_effect = RuntimeError("bug")

        start_response, body = call_app(app, "/metrics")

        assert start_response.status == "500 Internal Server Error"
        assert b"bug" in body

    @pytest.mark.parametrize("path", ["/status", "/health"])
    def test_status(self, registry, source, path):
        """Test the health check endpoints."""
        app = create_app(registry)

        start_response, body = call_app(app, path)

        assert start_response.status == "200 OK"
        assert body == b"ok\n"
        source.fetch_state.assert_not_called()

    def test_not_found(self, registry):
        """Test unknown paths."""
        app = create_app(registry)

        start_response, _ = call_app(app, "/")

        assert start_response.status == "404 Not Found"
