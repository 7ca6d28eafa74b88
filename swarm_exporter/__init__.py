"""Swarm Exporter - Prometheus metrics for Docker Swarm services and containers."""

__version__ = "0.1.0"
