"""Swarm service model."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Service:
    """A Swarm service as returned by the daemon's service list."""

    id: str
    name: str
    image: str
    # Desired replica count. None for global services and replicated
    # services without a count.
    replicas: int | None = None

    @property
    def is_replicated(self) -> bool:
        """Check if the service defines a desired replica count."""
        return self.replicas is not None
