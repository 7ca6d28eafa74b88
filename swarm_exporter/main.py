"""Main entry point for Swarm Exporter."""

import argparse
import logging
import sys
from pathlib import Path

from swarm_exporter.config import Config, ConfigError, load_config, validate_config


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Set up logging configuration.

    Info level by default; either flag switches to debug.

    Args:
        verbose: Set by -v/--verbose
        debug: Set by --debug or DEBUG=1
    """
    level = logging.DEBUG if (verbose or debug) else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    # urllib3 logs every request to the daemon socket at debug level
    logging.getLogger("urllib3").setLevel(logging.INFO)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="Swarm Exporter - Prometheus metrics for Docker Swarm services",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  swarm-exporter                      # Listen on :9675, local Docker socket
  swarm-exporter --port 9100          # Listen on another port
  DEBUG=1 swarm-exporter              # Enable debug logging

Environment:
  DEBUG=1            Enable debug logging
  DOCKER_HOST        Docker daemon address (default: local socket)
  DOCKER_TIMEOUT     Per-request daemon timeout in seconds
  EXPORTER_ADDRESS   Listen address
  EXPORTER_PORT      Listen port
  SCRAPE_TIMEOUT     Seconds allowed for one scrape
  INSPECT_WORKERS    Concurrent container inspect calls

Configuration:
  Optionally create a config.toml file:

  [daemon]
  host = "unix:///var/run/docker.sock"

  [server]
  port = 9675

  [scrape]
  timeout = 30
        """,
    )

    parser.add_argument(
        "-c",
        "--config",
        type=str,
        default=None,
        help="Path to configuration file (default: ./config.toml if present)",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Run in debug mode (test fetch before starting the server)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on (default: 9675)",
    )

    parser.add_argument(
        "--docker-host",
        type=str,
        default=None,
        help="Docker daemon address (overrides DOCKER_HOST)",
    )

    return parser.parse_args(argv)


def print_status(message: str) -> None:
    """Print a status message to stderr."""
    print(f"[swarm-exporter] {message}", file=sys.stderr)


def apply_cli_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Apply command line options on top of file and environment settings."""
    if args.port is not None:
        config.server.port = args.port
    if args.docker_host:
        config.daemon.host = args.docker_host
    if args.debug:
        config.debug = True
    validate_config(config)
    return config


def run_debug_fetch(fetcher) -> bool:
    """Run a test scrape to debug connectivity issues.

    Args:
        fetcher: Configured SwarmFetcher

    Returns:
        True if successful, False otherwise
    """
    from swarm_exporter.aggregator import build_observations
    from swarm_exporter.daemon.fetcher import ScrapeError

    print_status("Fetching swarm state...")
    fetcher.set_progress_callback(print_status)
    try:
        state = fetcher.fetch_state()
    except ScrapeError as e:
        print_status(f"ERROR: {e}")
        logging.exception("Debug fetch failed")
        return False
    finally:
        fetcher.set_progress_callback(None)

    print_status(f"Snapshot taken at: {state.fetched_at.isoformat()}")
    print_status(f"Services found: {len(state.services)}")
    print_status(f"Tasks found: {len(state.tasks)}")
    print_status(f"Containers found: {len(state.containers)}")
    print_status(f"Observations: {len(build_observations(state))}")
    print_status("DEBUG FETCH COMPLETE - All systems operational")
    return True


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    args = parse_args(argv)

    try:
        config = load_config(Path(args.config) if args.config else None)
        config = apply_cli_overrides(config, args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(args.verbose, config.debug)
    logger = logging.getLogger("swarm_exporter")

    # Import here to avoid loading the docker SDK for --help
    from swarm_exporter.aggregator import SnapshotAggregator
    from swarm_exporter.daemon.client import DaemonConnectionError, DockerClients
    from swarm_exporter.daemon.fetcher import SwarmFetcher
    from swarm_exporter.exposition import build_registry, create_app, create_server

    try:
        clients = DockerClients(config.daemon)
        logger.info(f"Docker client created using socket host: {clients.host}")
        clients.check_connection()
    except DaemonConnectionError as e:
        logger.error(f"{e}")
        return 1

    fetcher = SwarmFetcher(
        clients,
        scrape_timeout=config.scrape.timeout,
        inspect_workers=config.scrape.inspect_workers,
    )

    if args.debug:
        print_status("Running in debug mode...")
        if not run_debug_fetch(fetcher):
            clients.close()
            return 1

    registry = build_registry(SnapshotAggregator(fetcher))

    try:
        server = create_server(
            config.server.address, config.server.port, create_app(registry)
        )
    except OSError as e:
        logger.error(f"Error starting HTTP server: {e}")
        clients.close()
        return 1

    logger.info(
        f"Starting HTTP server on {config.server.address}:{config.server.port}"
    )
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        server.server_close()
        clients.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
