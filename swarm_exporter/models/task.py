"""Swarm task model."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Task:
    """One scheduled instance of a Swarm service."""

    id: str
    service_id: str
    state: str
    timestamp: datetime | None = None
