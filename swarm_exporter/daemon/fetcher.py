"""Docker Swarm state fetching."""

import logging
import time
from collections.abc import Callable
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any

from swarm_exporter.daemon.client import DAEMON_ERRORS, DockerClients
from swarm_exporter.models import Container, Service, SwarmState, Task
from swarm_exporter.utils.timestamps import parse_docker_timestamp

logger = logging.getLogger(__name__)

# Type alias for progress callback
ProgressCallback = Callable[[str], None]

# A daemon call: (error message prefix, bound API method, positional args)
DaemonCall = tuple[str, Callable[..., Any], tuple[Any, ...]]


class ScrapeError(Exception):
    """Raised when a daemon query fails during a scrape."""


class ScrapeTimeoutError(ScrapeError):
    """Raised when a scrape does not finish within its timeout."""


class SwarmFetcher:
    """Fetches services, tasks and containers from the Docker daemon."""

    # The three list calls are independent of each other
    LIST_WORKERS = 3

    def __init__(
        self,
        clients: DockerClients,
        scrape_timeout: float = 30,
        inspect_workers: int = 8,
        progress_callback: ProgressCallback | None = None,
    ):
        """Initialize the fetcher.

        Args:
            clients: Docker clients container
            scrape_timeout: Seconds allowed for one full fetch
            inspect_workers: Maximum concurrent container inspect calls
            progress_callback: Optional callback for progress updates
        """
        self.clients = clients
        self.scrape_timeout = scrape_timeout
        self.inspect_workers = inspect_workers
        self._progress_callback = progress_callback

    def _report_progress(self, message: str) -> None:
        """Report progress if callback is set."""
        logger.debug(message)
        if self._progress_callback:
            self._progress_callback(message)

    def set_progress_callback(self, callback: ProgressCallback | None) -> None:
        """Set or clear the progress callback."""
        self._progress_callback = callback

    def fetch_state(self) -> SwarmState:
        """Fetch a complete snapshot of services, tasks and containers.

        Any failed query aborts the whole fetch; no partial state is
        returned.

        Returns:
            SwarmState for this scrape

        Raises:
            ScrapeError: If any daemon query fails
            ScrapeTimeoutError: If the scrape timeout expires
        """
        started = time.monotonic()
        deadline = started + self.scrape_timeout
        api = self.clients.api

        self._report_progress("Listing services, tasks and containers...")
        raw_services, raw_tasks, raw_containers = self._run_all(
            [
                ("Error listing Swarm Services.", api.services, ()),
                ("Error listing Swarm Tasks.", api.tasks, ()),
                ("Error listing Docker Containers.", api.containers, ()),
            ],
            max_workers=self.LIST_WORKERS,
            deadline=deadline,
        )

        self._report_progress(f"Inspecting {len(raw_containers)} containers...")
        inspected = self._run_all(
            [
                (
                    "Error inspecting Docker Container details.",
                    api.inspect_container,
                    (container["Id"],),
                )
                for container in raw_containers
            ],
            max_workers=self.inspect_workers,
            deadline=deadline,
        )

        state = SwarmState(
            services=[self._build_service(s) for s in raw_services],
            tasks=[self._build_task(t) for t in raw_tasks],
            containers=[self._build_container(c) for c in inspected],
        )

        logger.debug(
            f"Fetched {len(state.services)} services, {len(state.tasks)} tasks, "
            f"{len(state.containers)} containers in "
            f"{time.monotonic() - started:.3f}s "
            f"(snapshot at {state.fetched_at.isoformat()})"
        )
        return state

    def _run_all(
        self,
        calls: list[DaemonCall],
        max_workers: int,
        deadline: float,
    ) -> list[Any]:
        """Run daemon calls concurrently and return results in call order.

        Args:
            calls: Calls to run
            max_workers: Concurrency bound
            deadline: time.monotonic() value by which all calls must finish

        Returns:
            Results in the same order as calls

        Raises:
            ScrapeError: For the first failed call, in call order
            ScrapeTimeoutError: If the deadline passes first
        """
        if not calls:
            return []

        executor = ThreadPoolExecutor(
            max_workers=min(max_workers, len(calls)),
            thread_name_prefix="swarm-fetch",
        )
        try:
            futures = [
                executor.submit(self._call, message, method, *args)
                for message, method, args in calls
            ]
            remaining = max(deadline - time.monotonic(), 0)
            done, not_done = wait(futures, timeout=remaining, return_when=FIRST_EXCEPTION)

            for future in futures:
                if future in done and future.exception() is not None:
                    raise future.exception()

            if not_done:
                raise ScrapeTimeoutError(
                    f"Scrape did not complete within {self.scrape_timeout}s "
                    f"({len(not_done)} daemon calls outstanding)"
                )

            return [future.result() for future in futures]
        finally:
            # Queued calls are dropped; in-flight ones end at the client timeout
            executor.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _call(message: str, method: Callable[..., Any], *args: Any) -> Any:
        try:
            return method(*args)
        except DAEMON_ERRORS as e:
            raise ScrapeError(f"{message} {e}") from e

    def _build_service(self, service_data: dict[str, Any]) -> Service:
        """Build a Service from a service list entry."""
        spec = service_data.get("Spec") or {}
        mode = spec.get("Mode") or {}

        replicas = None
        replicated = mode.get("Replicated")
        if isinstance(replicated, dict) and replicated.get("Replicas") is not None:
            replicas = int(replicated["Replicas"])

        container_spec = (spec.get("TaskTemplate") or {}).get("ContainerSpec") or {}

        return Service(
            id=service_data.get("ID", ""),
            name=spec.get("Name", ""),
            image=container_spec.get("Image", ""),
            replicas=replicas,
        )

    def _build_task(self, task_data: dict[str, Any]) -> Task:
        """Build a Task from a task list entry."""
        status = task_data.get("Status") or {}

        return Task(
            id=task_data.get("ID", ""),
            service_id=task_data.get("ServiceID", ""),
            state=status.get("State", ""),
            timestamp=parse_docker_timestamp(status.get("Timestamp")),
        )

    def _build_container(self, container_data: dict[str, Any]) -> Container:
        """Build a Container from a container inspect payload."""
        state = container_data.get("State") or {}

        health_status = None
        health = state.get("Health")
        if isinstance(health, dict) and health.get("Status"):
            health_status = health["Status"]

        return Container(
            id=container_data.get("Id", ""),
            name=container_data.get("Name", ""),
            status=state.get("Status", ""),
            health_status=health_status,
        )
