"""CLI entry point for netpulse.

Usage:
    python -m netpulse [options]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import logging.config
import sys
from pathlib import Path
from typing import NoReturn

from pydantic import ValidationError

from netpulse import __version__
from netpulse.alerter import AlertState, DryRunNotifier, WebhookNotifier
from netpulse.checker import AdmissionController, CheckOrchestrator
from netpulse.config import (
    ConfigError,
    FleetConfig,
    Settings,
    clear_settings_cache,
    get_settings,
    load_fleet_config,
)
from netpulse.metrics import start_metrics_server
from netpulse.scheduler import RoundScheduler
from netpulse.shutdown import GracefulShutdown, run_until_shutdown

APP_NAME = "netpulse"
APP_VERSION = __version__

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def port_number(value: str) -> int:
    """Parse a TCP port for argparse, rejecting values outside 1-65535."""
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}") from None
    if not 1 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port must be between 1 and 65535, got {port}")
    return port


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="netpulse",
        description="Probe network devices for TCP reachability and alert on failure.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m netpulse                          Monitor using ./config.toml
  python -m netpulse --config fleet.toml      Use another fleet file
  python -m netpulse --config-check           Validate config and exit
  python -m netpulse --dry-run                Log alerts instead of sending them
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {APP_VERSION}",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the fleet TOML file (default: NETPULSE_CONFIG or config.toml)",
    )

    parser.add_argument(
        "--config-check",
        action="store_true",
        help="Validate configuration and exit without monitoring",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level (default: from environment or fleet file)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run checks but log alerts instead of sending them",
    )

    parser.add_argument(
        "--metrics-port",
        type=port_number,
        default=None,
        help="Expose Prometheus metrics on this port",
    )

    return parser


def configure_logging(level: str) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level string (DEBUG, INFO, etc.)
    """
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S%z",
            },
            "detailed": {
                "format": (
                    "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
                ),
                "datefmt": "%Y-%m-%dT%H:%M:%S%z",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed" if level == "DEBUG" else "standard",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
        "loggers": {
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
        },
    }
    logging.config.dictConfig(config)


def print_banner() -> None:
    """Print the application startup banner."""
    banner = f"""
╔══════════════════════════════════════════════════════════════╗
║   {APP_NAME:^56}   ║
║   {"v" + APP_VERSION:^56}   ║
╚══════════════════════════════════════════════════════════════╝
"""
    print(banner)


def print_config_summary(fleet: FleetConfig, dry_run: bool) -> None:
    """Print a summary of the configuration."""
    summary = fleet.redacted_summary()
    print("Configuration:")
    print(f"  Devices: {summary['devices']}")
    print(f"  Interval: {summary['interval']}")
    print(f"  Timeout: {summary['timeout']}")
    print(f"  Alert Cooldown: {summary['alert_cooldown']}")
    print(f"  Max Connections: {summary['max_concurrent_connections']}")
    print(f"  Webhook: {summary['webhook']}")
    print(f"  Dry Run: {dry_run}")
    print()


def validate_settings() -> Settings | None:
    """Load process settings from the environment.

    Returns:
        Settings instance if valid, None if invalid.
    """
    try:
        clear_settings_cache()
        return get_settings()
    except ValidationError as e:
        print("Environment validation failed:", file=sys.stderr)
        _print_validation_errors(e)
        return None


def load_fleet(path: Path, settings: Settings) -> FleetConfig | None:
    """Load the fleet file.

    Returns:
        FleetConfig if valid, None if invalid.
    """
    webhook = settings.webhook_url.get_secret_value() if settings.webhook_url else None
    try:
        return load_fleet_config(path, webhook_url=webhook)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return None
    except ValidationError as e:
        print(f"Configuration validation failed for {path}:", file=sys.stderr)
        _print_validation_errors(e)
        return None


def _print_validation_errors(error: ValidationError) -> None:
    for item in error.errors():
        field = ".".join(str(loc) for loc in item["loc"])
        print(f"  {field}: {item['msg']}", file=sys.stderr)


def run_config_check(fleet: FleetConfig) -> int:
    """Print the validated configuration and return the exit code."""
    print("Configuration is valid!")
    print()
    print_config_summary(fleet, dry_run=False)
    for device in fleet.devices:
        ports = ", ".join(c.display_name for c in device.checks)
        print(f"  {device.id}: {device.name} [{len(device.ips)} IP(s)] {ports}")
    print()
    return EXIT_SUCCESS


def build_scheduler(fleet: FleetConfig, dry_run: bool) -> RoundScheduler:
    """Wire the check engine, alert state and notifier together."""
    settings = fleet.settings
    admission = AdmissionController(settings.max_concurrent_connections)
    orchestrator = CheckOrchestrator(admission, timeout=settings.timeout)
    notifier = DryRunNotifier() if dry_run else WebhookNotifier()
    return RoundScheduler(
        fleet.devices,
        orchestrator,
        AlertState(),
        notifier,
        webhook_url=settings.webhook,
        interval=settings.interval,
        cooldown=settings.alert_cooldown,
    )


async def run_monitor(fleet: FleetConfig, dry_run: bool) -> int:
    """Run the monitoring loop until a shutdown signal arrives.

    Returns:
        Exit code.
    """
    logger = logging.getLogger(__name__)

    try:
        async with GracefulShutdown() as shutdown:
            scheduler = build_scheduler(fleet, dry_run)
            shutdown.register_cleanup(scheduler.stop)

            logger.info("Monitor running. Press Ctrl+C to stop.")
            await run_until_shutdown(scheduler.run(), shutdown)

        logger.info("Shut down cleanly")
        return EXIT_SUCCESS
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.exception("Monitor failed: %s", e)
        return EXIT_ERROR


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:]).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = validate_settings()
    if settings is None:
        sys.exit(EXIT_CONFIG_ERROR)

    config_path = args.config or settings.config_path
    fleet = load_fleet(config_path, settings)
    if fleet is None:
        sys.exit(EXIT_CONFIG_ERROR)

    log_level = args.log_level or settings.log_level or fleet.settings.log_level
    configure_logging(log_level)

    print_banner()

    if args.config_check:
        sys.exit(run_config_check(fleet))

    dry_run = args.dry_run or settings.dry_run
    print_config_summary(fleet, dry_run)

    metrics_port = args.metrics_port or settings.metrics_port
    if metrics_port:
        start_metrics_server(metrics_port)

    exit_code = asyncio.run(run_monitor(fleet, dry_run))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
