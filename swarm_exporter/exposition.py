"""Prometheus exposition of aggregated Swarm observations."""

import logging
from collections.abc import Callable, Iterable
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from prometheus_client import CollectorRegistry, generate_latest
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.exposition import CONTENT_TYPE_LATEST, ThreadingWSGIServer
from prometheus_client.registry import Collector

from swarm_exporter.aggregator import SnapshotAggregator
from swarm_exporter.daemon.fetcher import ScrapeError

logger = logging.getLogger(__name__)

METRICS_PATH = "/metrics"
STATUS_PATHS = ("/status", "/health")

PLAIN_TEXT = [("Content-Type", "text/plain; charset=utf-8")]

StartResponse = Callable[[str, list[tuple[str, str]]], object]


class SwarmCollector(Collector):
    """Custom collector exposing one snapshot of the swarm per scrape."""

    def __init__(self, aggregator: SnapshotAggregator):
        self.aggregator = aggregator

    def describe(self) -> Iterable[GaugeMetricFamily]:
        for descriptor in self.aggregator.describe():
            yield GaugeMetricFamily(
                descriptor.name,
                descriptor.documentation,
                labels=list(descriptor.label_names),
            )

    def collect(self) -> Iterable[GaugeMetricFamily]:
        """Build gauge families from a fresh snapshot.

        ScrapeError propagates so the HTTP layer can fail the scrape as a
        whole instead of serving partial metrics.
        """
        logger.debug("Received request for metrics")
        observations = self.aggregator.collect()

        families = {
            descriptor.name: GaugeMetricFamily(
                descriptor.name,
                descriptor.documentation,
                labels=list(descriptor.label_names),
            )
            for descriptor in self.aggregator.describe()
        }
        populated: list[str] = []
        for observation in observations:
            family = families[observation.name]
            family.add_metric(list(observation.label_values), observation.value)
            if observation.name not in populated:
                populated.append(observation.name)

        for name in populated:
            yield families[name]


def build_registry(aggregator: SnapshotAggregator) -> CollectorRegistry:
    """Create a registry holding only the Swarm collector.

    No process, platform or GC collectors are registered.
    """
    registry = CollectorRegistry()
    registry.register(SwarmCollector(aggregator))
    return registry


def _http_response(
    start_response: StartResponse,
    status: str,
    headers: list[tuple[str, str]],
    body: bytes,
) -> list[bytes]:
    start_response(status, headers)
    return [body]


def create_app(registry: CollectorRegistry) -> Callable[..., list[bytes]]:
    """Create the WSGI application serving metrics and status.

    Args:
        registry: Registry to expose on the metrics path

    Returns:
        WSGI application callable
    """

    def app(environ: dict, start_response: StartResponse) -> list[bytes]:
        path = environ.get("PATH_INFO", "/")

        if path in STATUS_PATHS:
            return _http_response(start_response, "200 OK", PLAIN_TEXT, b"ok\n")

        if path != METRICS_PATH:
            return _http_response(
                start_response, "404 Not Found", PLAIN_TEXT, b"not found\n"
            )

        try:
            output = generate_latest(registry)
        except ScrapeError as e:
            logger.error(f"Scrape failed: {e}")
            return _http_response(
                start_response,
                "503 Service Unavailable",
                PLAIN_TEXT,
                f"scrape failed: {e}\n".encode("utf-8"),
            )
        except Exception as e:
            logger.exception(f"Unexpected error during scrape: {e}")
            return _http_response(
                start_response,
                "500 Internal Server Error",
                PLAIN_TEXT,
                f"scrape failed: {e}\n".encode("utf-8"),
            )

        return _http_response(
            start_response,
            "200 OK",
            [("Content-Type", CONTENT_TYPE_LATEST)],
            output,
        )

    return app


class _LoggingRequestHandler(WSGIRequestHandler):
    """Route per-request access logs to the logging module."""

    def log_message(self, format: str, *args) -> None:
        logger.debug(f"{self.address_string()} - {format % args}")


def create_server(
    address: str, port: int, app: Callable[..., list[bytes]]
) -> WSGIServer:
    """Create a threaded WSGI server; concurrent scrapes run independently."""
    return make_server(
        address,
        port,
        app,
        server_class=ThreadingWSGIServer,
        handler_class=_LoggingRequestHandler,
    )

