"""
Command line entry point.

Usage:
    python -m vaultkeeper supervise
    python -m vaultkeeper read secret/data/database --key password

Configuration comes from the environment (see vaultkeeper.config.Settings).

Exit codes:
    0 - success (supervise: renewer stopped on a healthy token or on signal)
    1 - store or secret error, or renewer stopped on a failure
    2 - configuration error
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from types import FrameType

from prometheus_client import CollectorRegistry
from pydantic import ValidationError

from vaultkeeper.backend import create_reader, start_supervisor
from vaultkeeper.common.logging import configure_logging
from vaultkeeper.config import Settings
from vaultkeeper.exceptions import ConfigurationError, VaultKeeperError
from vaultkeeper.metrics import start_metrics_server
from vaultkeeper.renewer import StopReason

logger = logging.getLogger(__name__)

_CLEAN_STOPS = {StopReason.HEALTHY, StopReason.CANCELLED}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vaultkeeper",
        description="Supervise a Vault token and read secrets",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("supervise", help="Run the token renewer until it stops or is signalled")

    read_parser = subparsers.add_parser("read", help="Print one secret field")
    read_parser.add_argument("path", help="Full secret path (e.g., secret/data/database)")
    read_parser.add_argument("--key", default="", help="Field name (default: data)")
    return parser


def _supervise(settings: Settings, registry: CollectorRegistry) -> int:
    stop_event = threading.Event()

    def _handle_signal(signum: int, frame: FrameType | None) -> None:
        logger.info("Received shutdown signal", extra={"signal": signal.Signals(signum).name})
        stop_event.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    backend = start_supervisor(settings, stop_event, registry=registry)
    thread = backend.renewer.thread
    # join() with a timeout keeps the main thread responsive to signals
    while thread is not None and thread.is_alive():
        thread.join(timeout=1.0)

    reason = backend.renewer.stopped_reason
    logger.info("Token renewer stopped", extra={"reason": reason.value if reason else None})
    return 0 if reason in _CLEAN_STOPS else 1


def _read(settings: Settings, registry: CollectorRegistry, path: str, key: str) -> int:
    value = create_reader(settings, registry=registry).read_secret(path, key)
    print(value)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point. Returns exit code."""
    args = _build_parser().parse_args(argv)

    try:
        settings = Settings()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    configure_logging(service_name=settings.service_name, log_level=settings.log_level)
    registry = CollectorRegistry()
    if settings.metrics_port:
        start_metrics_server(settings.metrics_port, registry)

    try:
        if args.command == "supervise":
            return _supervise(settings, registry)
        return _read(settings, registry, args.path, args.key)
    except ConfigurationError as e:
        logger.error("Invalid configuration", extra={"error": str(e)})
        return 2
    except VaultKeeperError as e:
        logger.error("Request failed", extra={"error": str(e), "error_type": e.error_type})
        print(e.error_type, file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
