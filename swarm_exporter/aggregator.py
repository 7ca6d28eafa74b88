"""Aggregation of daemon state into labeled gauge observations."""

import logging
from dataclasses import dataclass
from typing import Protocol

from swarm_exporter.models import Container, Service, SwarmState, Task
from swarm_exporter.utils.timestamps import to_epoch_seconds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetricDescriptor:
    """Static description of one exported metric."""

    name: str
    documentation: str
    label_names: tuple[str, ...]


@dataclass
class Observation:
    """One gauge sample: metric name, label values and value.

    Mutable and unhashable because labels is a dict.
    """

    name: str
    labels: dict[str, str]
    value: float

    @property
    def label_values(self) -> tuple[str, ...]:
        return tuple(self.labels.values())


SERVICE_DESIRED_REPLICAS = MetricDescriptor(
    "swarm_service_desired_replicas",
    "Number of replicas requested for this service",
    ("service_name",),
)
SERVICE_TASKS = MetricDescriptor(
    "swarm_service_tasks",
    "Number of docker tasks",
    ("service_name", "state"),
)
SERVICE_INFO = MetricDescriptor(
    "swarm_service_info",
    "Information about each service",
    ("service_name", "image"),
)
SERVICE_CHANGE_TIME = MetricDescriptor(
    "swarm_service_change_time",
    "Time when a task state last changed",
    ("service_name",),
)
CONTAINER_STATUS = MetricDescriptor(
    "container_status",
    "Container status",
    ("container_status", "container_name"),
)
CONTAINER_HEALTH_STATUS = MetricDescriptor(
    "container_health_status",
    "Container Health Status",
    ("container_health_status", "container_name"),
)

METRIC_DESCRIPTORS: tuple[MetricDescriptor, ...] = (
    SERVICE_DESIRED_REPLICAS,
    SERVICE_TASKS,
    SERVICE_INFO,
    SERVICE_CHANGE_TIME,
    CONTAINER_STATUS,
    CONTAINER_HEALTH_STATUS,
)


class StateSource(Protocol):
    """Anything that can produce a fresh SwarmState."""

    def fetch_state(self) -> SwarmState: ...


def _observe(descriptor: MetricDescriptor, value: float, *label_values: str) -> Observation:
    return Observation(
        name=descriptor.name,
        labels=dict(zip(descriptor.label_names, label_values, strict=True)),
        value=float(value),
    )


def container_observations(container: Container) -> list[Observation]:
    """Build status and, when a health check exists, health observations."""
    observations = [
        _observe(CONTAINER_STATUS, 1, container.status, container.name),
    ]
    if container.has_health_check:
        observations.append(
            _observe(
                CONTAINER_HEALTH_STATUS, 1, container.health_status, container.name
            )
        )
    return observations


def service_observations(service: Service, tasks: list[Task]) -> list[Observation]:
    """Build the observations for one service.

    Args:
        service: The service
        tasks: Tasks that reference this service

    Returns:
        Replica count (replicated services only), one task count per
        observed state, the info metric, and the last change time (only
        when at least one task carries a timestamp)
    """
    observations: list[Observation] = []

    if service.is_replicated:
        observations.append(
            _observe(SERVICE_DESIRED_REPLICAS, service.replicas, service.name)
        )

    state_counts: dict[str, int] = {}
    last_change = None
    for task in tasks:
        state_counts[task.state] = state_counts.get(task.state, 0) + 1
        if task.timestamp is not None and (
            last_change is None or task.timestamp > last_change
        ):
            last_change = task.timestamp

    for state in sorted(state_counts):
        observations.append(
            _observe(SERVICE_TASKS, state_counts[state], service.name, state)
        )

    # See https://www.robustperception.io/exposing-the-software-version-to-prometheus
    observations.append(_observe(SERVICE_INFO, 1, service.name, service.image))

    if last_change is not None:
        observations.append(
            _observe(SERVICE_CHANGE_TIME, to_epoch_seconds(last_change), service.name)
        )

    return observations


def build_observations(state: SwarmState) -> list[Observation]:
    """Join services, tasks and containers into observations.

    Containers come first in daemon list order, then services in daemon
    list order. Tasks whose service is not in the service list are ignored.
    """
    observations: list[Observation] = []

    for container in state.containers:
        observations.extend(container_observations(container))

    tasks_by_service = state.tasks_by_service()
    for service in state.services:
        observations.extend(
            service_observations(service, tasks_by_service.get(service.id, []))
        )

    return observations


class SnapshotAggregator:
    """Produces a full set of observations from the daemon on each call."""

    def __init__(self, source: StateSource):
        """Initialize the aggregator.

        Args:
            source: Provider of daemon state, normally a SwarmFetcher
        """
        self.source = source

    def collect(self) -> list[Observation]:
        """Fetch current daemon state and aggregate it.

        Raises:
            ScrapeError: If any daemon query fails; nothing is emitted
        """
        state = self.source.fetch_state()
        observations = build_observations(state)
        logger.debug(f"Aggregated {len(observations)} observations")
        return observations

    def describe(self) -> list[MetricDescriptor]:
        """Return the static descriptors for every exported metric."""
        return list(METRIC_DESCRIPTORS)
