"""Docker container model."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Container:
    """Live state of a container, taken from an inspect call."""

    id: str
    name: str
    status: str
    # None when the container has no health check
    health_status: str | None = None

    @property
    def has_health_check(self) -> bool:
        return self.health_status is not None
