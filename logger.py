"""
logger.py
Logging setup: console + dated log file, with optional JSON context on messages.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime
from pathlib import Path

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER = "charity"


def configure_logging(
    level: str = "INFO",
    log_dir: Path | None = None,
    enable_console: bool = True,
    enable_file: bool = True,
) -> logging.Logger:
    """
    Attach handlers to the root logger. Safe to call on every Streamlit rerun:
    existing handlers are replaced rather than stacked.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files (default: logs/)
        enable_console: Output logs to stdout
        enable_file: Write logs to charity_YYYYMMDD.log
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root.handlers):
        if getattr(handler, "_charity", False):
            root.removeHandler(handler)
            handler.close()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT, datefmt=DATE_FORMAT))
        console_handler._charity = True
        root.addHandler(console_handler)

    if enable_file:
        log_dir = log_dir or Path("logs")
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"charity_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)  # Always log everything to file
        file_handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT))
        file_handler._charity = True
        root.addHandler(file_handler)

    return logging.getLogger(ROOT_LOGGER)


def log_event(logger: logging.Logger, level: int, message: str, **context) -> None:
    """Log ``message`` with keyword context appended as JSON."""
    if context:
        message = f"{message} | Context: {json.dumps(context, default=str, ensure_ascii=False)}"
    logger.log(level, message)
