"""
Logging setup for the capsearch entry points (server and CLIs).

Library modules never configure logging themselves; they only do
`logger = logging.getLogger(__name__)` and inherit the handlers attached
here to the "capsearch" logger.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Rotate at 20 MB, keep three old files
_MAX_LOG_BYTES = 20 * 1024 * 1024
_LOG_BACKUPS = 3


def _file_handler(log_dir: Path, log_file: str) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        log_dir / log_file,
        maxBytes=_MAX_LOG_BYTES,
        backupCount=_LOG_BACKUPS,
        encoding="utf-8",
    )


def setup_logging(
    log_dir: Path | None = None,
    level: int = logging.INFO,
    log_file: str = "capsearch.log",
) -> None:
    """
    Attach a stdout handler, and a rotating file handler when *log_dir*
    is given, to the package logger.

    Calling it again only updates the level; handlers are attached once.
    """
    package_logger = logging.getLogger("capsearch")
    package_logger.setLevel(level)
    if package_logger.handlers:
        return

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    package_logger.addHandler(console)

    if log_dir is None:
        return
    try:
        file_handler = _file_handler(log_dir, log_file)
    except OSError as exc:
        package_logger.warning("File logging disabled for %s: %s", log_dir, exc)
        return
    file_handler.setFormatter(formatter)
    package_logger.addHandler(file_handler)
