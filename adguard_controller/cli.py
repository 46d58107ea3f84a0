"""Command-line interface for adguard-controller."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from . import constants
from .app import ControllerApp, dispatch_once
from .config import load_config
from .core import Command
from .logging import configure_logging

LOGGER = logging.getLogger(__name__)

_MASKED_OPTIONS = {"password"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=constants.APP_NAME,
        description="Toggle AdGuard Home service blocking over HTTP and MQTT",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {constants.DEFAULT_CONFIG_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("start", help="Start the HTTP and MQTT control service")
    subparsers.add_parser("enable", help="Enable blocking once and exit")
    subparsers.add_parser("disable", help="Disable blocking once and exit")
    subparsers.add_parser(
        "show-config", help="Print the resolved configuration and exit"
    )

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)

    if args.command == "start":
        ControllerApp.start(config)
        return 0

    if args.command in ("enable", "disable"):
        configure_logging(config.logging.level, log_path=config.logging.path)
        succeeded = asyncio.run(dispatch_once(config, Command(args.command)))
        return 0 if succeeded else 1

    if args.command == "show-config":
        print(f"Configuration resolved from {config.path!s} and environment\n")
        for section in config.raw.sections():
            print(f"[{section}]")
            for key, value in config.raw[section].items():
                if key in _MASKED_OPTIONS and value:
                    value = "********"
                print(f"{key} = {value}")
            print()
        return 0

    LOGGER.error("Unknown command: %s", args.command)
    return 1


if __name__ == "__main__":
    sys.exit(main())
