"""Per-scrape snapshot of daemon state."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from swarm_exporter.models.container import Container
from swarm_exporter.models.service import Service
from swarm_exporter.models.task import Task


@dataclass
class SwarmState:
    """Everything fetched from the daemon during one scrape."""

    services: list[Service] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    containers: list[Container] = field(default_factory=list)
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def tasks_by_service(self) -> dict[str, list[Task]]:
        """Group tasks by the ID of the service that owns them.

        Built in a single pass so per-service lookups are O(1).
        """
        grouped: dict[str, list[Task]] = {}
        for task in self.tasks:
            grouped.setdefault(task.service_id, []).append(task)
        return grouped
