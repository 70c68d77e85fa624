"""Logging setup for roadcapture entry points.

Usage:
    from roadcapture.logging_config import setup_logging

    setup_logging()                       # INFO to stderr
    setup_logging(debug=True)             # DEBUG (shows threshold discards)
    setup_logging(log_file="gen.log")     # stderr + rotating file
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 3


def setup_logging(
    level: int = logging.INFO,
    log_file: str | Path | None = None,
    fmt: str = DEFAULT_FORMAT,
    max_bytes: int = MAX_BYTES,
    backup_count: int = BACKUP_COUNT,
    *,
    debug: bool = False,
) -> None:
    """Configure the root logger. Call once per entry point; later calls are no-ops."""
    if debug:
        level = logging.DEBUG

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"))
    logging.basicConfig(level=level, format=fmt, handlers=handlers)

    if log_file is not None:
        logging.getLogger(__name__).info("Logging to %s", log_file)
