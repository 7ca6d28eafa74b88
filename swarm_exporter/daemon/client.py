"""Docker client initialization and configuration."""

import logging
import os
from collections.abc import Mapping
from typing import Any

import docker
import requests
from docker.errors import DockerException

from swarm_exporter.config import DaemonConfig

logger = logging.getLogger(__name__)

# Errors the docker SDK can surface for a failed daemon request
DAEMON_ERRORS = (DockerException, requests.exceptions.RequestException)

# Address the SDK falls back to when neither a host nor DOCKER_HOST is set
DEFAULT_DOCKER_HOST = "unix:///var/run/docker.sock"


class DaemonConnectionError(Exception):
    """Raised when the Docker daemon cannot be reached at startup."""


def create_docker_client(daemon_config: DaemonConfig) -> docker.DockerClient:
    """Create a configured Docker client.

    Args:
        daemon_config: Daemon configuration with optional host override

    Returns:
        Configured docker.DockerClient

    Raises:
        DaemonConnectionError: If the client cannot be initialised
    """
    client_kwargs = {
        "version": "auto",
        "timeout": daemon_config.timeout,
        "max_pool_size": daemon_config.max_pool_size,
    }

    try:
        if daemon_config.host:
            return docker.DockerClient(base_url=daemon_config.host, **client_kwargs)
        # Honours DOCKER_HOST, DOCKER_TLS_VERIFY and DOCKER_CERT_PATH
        return docker.from_env(**client_kwargs)
    except DAEMON_ERRORS as e:
        raise DaemonConnectionError(
            f"Error while initialising Docker client: {e}"
        ) from e


def resolve_docker_host(
    daemon_config: DaemonConfig, environ: Mapping[str, str] | None = None
) -> str:
    """Get the daemon address a client built from this config connects to.

    Args:
        daemon_config: Daemon configuration with optional host override
        environ: Environment mapping (defaults to os.environ)

    Returns:
        The configured host, else DOCKER_HOST, else the local socket
    """
    if environ is None:
        environ = os.environ
    return daemon_config.host or environ.get("DOCKER_HOST") or DEFAULT_DOCKER_HOST


class DockerClients:
    """Container for the Docker API client."""

    def __init__(self, daemon_config: DaemonConfig):
        """Initialize the Docker client.

        Args:
            daemon_config: Daemon configuration
        """
        self.client = create_docker_client(daemon_config)
        # Low-level API: raw dicts, no implicit inspect per listed container
        self.api = self.client.api
        self.host = resolve_docker_host(daemon_config)

    def check_connection(self) -> dict[str, Any]:
        """Query daemon info to verify connectivity.

        Returns:
            Daemon info payload

        Raises:
            DaemonConnectionError: If the daemon does not answer
        """
        try:
            info = self.api.info()
        except DAEMON_ERRORS as e:
            raise DaemonConnectionError(
                f"Error communicating with Docker socket at {self.host}: {e}"
            ) from e

        logger.info(
            f"Connected to Docker daemon: "
            f"OS={info.get('OSType', 'unknown')} / {info.get('OperatingSystem', 'unknown')} "
            f"version={info.get('ServerVersion', 'unknown')}"
        )
        return info

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.client.close()
