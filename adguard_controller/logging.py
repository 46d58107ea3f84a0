"""Logging setup for the controller process."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Per-request access lines and paho's packet trace.
NETWORK_LOGGERS = ("aiohttp.access", "paho")


def resolve_level(level: str) -> Optional[int]:
    """Map a level name such as ``debug`` or ``WARNING`` (or a number) to its value."""

    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else None


def configure_logging(
    level: str = "INFO", *, log_path: Optional[Path] = None, log_network: bool = False
) -> None:
    """Send records to stderr and, when ``log_path`` is set, to that file too.

    Unknown ``level`` names fall back to INFO with a warning. Unless
    ``log_network`` is set, the HTTP access log and the MQTT client trace are
    capped at WARNING.
    """

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_path:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    resolved = resolve_level(level)
    root.setLevel(resolved if resolved is not None else logging.INFO)
    logging.captureWarnings(True)

    for name in NETWORK_LOGGERS:
        logging.getLogger(name).setLevel(
            logging.NOTSET if log_network else logging.WARNING
        )

    if resolved is None:
        logging.getLogger(__name__).warning(
            "Unknown log level %r; using INFO", level
        )
