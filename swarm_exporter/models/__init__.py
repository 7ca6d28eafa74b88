"""Data models for Swarm Exporter."""

from swarm_exporter.models.service import Service
from swarm_exporter.models.task import Task
from swarm_exporter.models.container import Container
from swarm_exporter.models.state import SwarmState

__all__ = [
    "Service",
    "Task",
    "Container",
    "SwarmState",
]
