#!/usr/bin/env python3
"""
Nextcloud exporter entrypoint.

Usage:
    python -m nc_exporter --config config.yaml --log-level INFO
"""
from __future__ import annotations

import argparse
import logging
import signal
import sys

from dotenv import load_dotenv

from nc_exporter import __version__
from nc_exporter.config import ConfigProvider, find_config_file
from nc_exporter.lifecycle.supervisor import Supervisor
from nc_exporter.metrics.registry import build_default_registry
from nc_exporter.metrics.walker import validate_spec
from nc_exporter.provider.models import SERVERINFO_SPEC
from nc_exporter.utils.exceptions import ExporterError
from nc_exporter.utils.logging_utils import setup_logging

logger = logging.getLogger("nc_exporter")

EXIT_STARTUP_ERROR = 2


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Prometheus exporter for Nextcloud serverinfo')
    parser.add_argument('--config', default=None,
                        help='Path to YAML configuration file (default: ./config.yaml if present)')
    parser.add_argument('--host', default='0.0.0.0',
                        help='Interface to bind the metrics listener to (default: 0.0.0.0)')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO', help='Set the logging level')
    parser.add_argument('--log-file', default=None, help='Optional path to a log file')
    parser.add_argument('--env-file', default='.env',
                        help='dotenv file with NC_* overrides, loaded if present (default: .env)')
    parser.add_argument('--version', action='version', version=f'nextcloud-exporter {__version__}')
    return parser.parse_args(argv)


def setup_signal_handling(supervisor: Supervisor) -> None:
    """Set up signal handlers for graceful shutdown."""
    def signal_handler(sig, frame):
        logger.info("received %s", signal.Signals(sig).name)
        supervisor.request_shutdown()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


def main(argv: list[str] | None = None) -> int:
    args = parse_arguments(argv)
    load_dotenv(args.env_file)
    setup_logging(args.log_level, args.log_file)

    try:
        provider = ConfigProvider(args.config or find_config_file())
        registry = build_default_registry()
        for name in validate_spec(SERVERINFO_SPEC, registry):
            logger.warning("%s tagged for export but no corresponding metric template found", name)
    except ExporterError as e:
        logger.error("startup failed: %s", e)
        return EXIT_STARTUP_ERROR

    supervisor = Supervisor(provider, registry, host=args.host)
    setup_signal_handling(supervisor)
    provider.start()
    try:
        return supervisor.run()
    finally:
        provider.stop()


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
