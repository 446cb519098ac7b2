# src/taskdeck/logging_setup.py

"""
Logging for the taskdeck CLI.

The console shows sync outcomes (added, moved, partial, rejected). Storage
backends and the HTTP client log every request; that goes to the log file
under the data dir and reaches the console only at WARNING and above.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

LOG_FILE_NAME = "taskdeck.log"
LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# First matching prefix wins; anything unlisted needs ERROR.
CONSOLE_THRESHOLDS: tuple[tuple[str, int], ...] = (
    ("taskdeck.storage.", logging.WARNING),
    ("taskdeck.", logging.NOTSET),
    ("httpx", logging.WARNING),
    ("httpcore", logging.WARNING),
)


def console_threshold(logger_name: str) -> int:
    for prefix, level in CONSOLE_THRESHOLDS:
        if logger_name.startswith(prefix):
            return level
    return logging.ERROR


class _ConsoleNoiseFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= console_threshold(record.name)


def parse_level(value: str | int | None, default: int = logging.INFO) -> int:
    """"debug" / "WARNING" / 10 -> logging level; unknown names give default."""
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value or "").strip().upper())
    return level if isinstance(level, int) else default


def setup_logging(
    *,
    log_dir: str | Path,
    console_level: str | int = logging.INFO,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> Path:
    """
    Replace root handlers with a filtered stderr handler and a rotating DEBUG
    file in log_dir. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(parse_level(console_level))
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file
