# src/taskboard/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _ConsoleNoiseFilter(logging.Filter):
    """Keep the REPL readable: app logs pass, storage writes and foreign loggers need WARNING/ERROR."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith("taskboard.storage."):
            return record.levelno >= logging.WARNING
        if record.name.startswith("taskboard."):
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskboard",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """Console (filtered) plus taskboard.log in `log_dir`. Returns the log file path."""
    log_file = Path(log_dir) / "taskboard.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.addFilter(_ConsoleNoiseFilter())

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(file_level)

    logging.basicConfig(
        level=logging.DEBUG,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[console, file_handler],
        force=True,
    )
    logging.captureWarnings(True)
    return log_file
