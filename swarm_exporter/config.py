"""Configuration loading for Swarm Exporter.

Settings come from an optional TOML file and are overridden by environment
variables, so the exporter can run with no file at all inside a container.
"""

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_PORT = 9675
DEFAULT_ADDRESS = "0.0.0.0"
DEFAULT_DAEMON_TIMEOUT = 10
DEFAULT_MAX_POOL_SIZE = 10
DEFAULT_SCRAPE_TIMEOUT = 30
DEFAULT_INSPECT_WORKERS = 8


class ConfigError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""


@dataclass
class DaemonConfig:
    """Connection settings for the Docker daemon."""

    # Only set from the config file or CLI. None defers to docker.from_env,
    # which reads DOCKER_HOST together with the DOCKER_TLS_VERIFY and
    # DOCKER_CERT_PATH settings
    host: str | None = None
    timeout: int = DEFAULT_DAEMON_TIMEOUT
    max_pool_size: int = DEFAULT_MAX_POOL_SIZE


@dataclass
class ServerConfig:
    """HTTP listener settings."""

    address: str = DEFAULT_ADDRESS
    port: int = DEFAULT_PORT


@dataclass
class ScrapeConfig:
    """Per-scrape limits."""

    timeout: int = DEFAULT_SCRAPE_TIMEOUT
    inspect_workers: int = DEFAULT_INSPECT_WORKERS


@dataclass
class Config:
    """Application configuration."""

    daemon: DaemonConfig = field(default_factory=DaemonConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    scrape: ScrapeConfig = field(default_factory=ScrapeConfig)
    debug: bool = False


def get_default_config_path() -> Path:
    """Get the default configuration file path.

    Looks for config.toml in the current directory first, then in
    ~/.config/swarm-exporter/.

    Returns:
        Path to the configuration file (may not exist)
    """
    local_config = Path("./config.toml")
    if local_config.exists():
        return local_config

    return Path.home() / ".config" / "swarm-exporter" / "config.toml"


def _read_toml(config_path: Path) -> dict[str, Any]:
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in config file: {e}") from e


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table")
    return section


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from e


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _apply_environment(config: Config, environ: Mapping[str, str]) -> None:
    """Override file settings with environment variables."""
    if "DEBUG" in environ:
        # DEBUG=1 enables debug logging, anything else leaves it off
        config.debug = environ["DEBUG"] == "1"
    if environ.get("DOCKER_TIMEOUT"):
        config.daemon.timeout = _as_int(environ["DOCKER_TIMEOUT"], "DOCKER_TIMEOUT")
    if environ.get("EXPORTER_ADDRESS"):
        config.server.address = environ["EXPORTER_ADDRESS"]
    if environ.get("EXPORTER_PORT"):
        config.server.port = _as_int(environ["EXPORTER_PORT"], "EXPORTER_PORT")
    if environ.get("SCRAPE_TIMEOUT"):
        config.scrape.timeout = _as_int(environ["SCRAPE_TIMEOUT"], "SCRAPE_TIMEOUT")
    if environ.get("INSPECT_WORKERS"):
        config.scrape.inspect_workers = _as_int(
            environ["INSPECT_WORKERS"], "INSPECT_WORKERS"
        )


def validate_config(config: Config) -> None:
    """Check value ranges.

    Raises:
        ConfigError: If any setting is out of range
    """
    if not 1 <= config.server.port <= 65535:
        raise ConfigError(
            f"Server port must be between 1 and 65535, got {config.server.port}"
        )
    if config.daemon.timeout <= 0:
        raise ConfigError("Daemon timeout must be at least 1 second")
    if config.daemon.max_pool_size < 1:
        raise ConfigError("Daemon max_pool_size must be at least 1")
    if config.scrape.timeout <= 0:
        raise ConfigError("Scrape timeout must be at least 1 second")
    if config.scrape.inspect_workers < 1:
        raise ConfigError("Scrape inspect_workers must be at least 1")


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Load configuration from a TOML file and the environment.

    Args:
        config_path: Explicit path to a TOML file. When None, the default
            path is used if it exists and skipped otherwise.
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Loaded configuration

    Raises:
        ConfigError: If the configuration is invalid or an explicitly
            requested file is missing
    """
    if environ is None:
        environ = os.environ

    data: dict[str, Any] = {}
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")
        data = _read_toml(config_path)
    else:
        default_path = get_default_config_path()
        if default_path.exists():
            data = _read_toml(default_path)

    daemon_data = _section(data, "daemon")
    server_data = _section(data, "server")
    scrape_data = _section(data, "scrape")
    logging_data = _section(data, "logging")

    config = Config(
        daemon=DaemonConfig(
            host=daemon_data.get("host") or None,
            timeout=_as_int(
                daemon_data.get("timeout", DEFAULT_DAEMON_TIMEOUT), "daemon.timeout"
            ),
            max_pool_size=_as_int(
                daemon_data.get("max_pool_size", DEFAULT_MAX_POOL_SIZE),
                "daemon.max_pool_size",
            ),
        ),
        server=ServerConfig(
            address=server_data.get("address", DEFAULT_ADDRESS),
            port=_as_int(server_data.get("port", DEFAULT_PORT), "server.port"),
        ),
        scrape=ScrapeConfig(
            timeout=_as_int(
                scrape_data.get("timeout", DEFAULT_SCRAPE_TIMEOUT), "scrape.timeout"
            ),
            inspect_workers=_as_int(
                scrape_data.get("inspect_workers", DEFAULT_INSPECT_WORKERS),
                "scrape.inspect_workers",
            ),
        ),
        debug=_as_bool(logging_data.get("debug", False)),
    )

    _apply_environment(config, environ)
    validate_config(config)
    return config
