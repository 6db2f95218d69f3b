"""
Logging utilities for pmcharts.

Every module asks `get_logger(__name__)` for its logger:
- console output goes through Rich
- `pmcharts track` runs also append JSON lines to `track.log` in the cwd
- PMCHARTS_LOG_LEVEL overrides the default INFO level
"""

import logging
import os
import sys
import json
from pathlib import Path

from rich.logging import RichHandler

AUDITED_COMMANDS = {"track"}


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record; tracebacks go in `exception`.
    """
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level":     record.levelname,
            "logger":    record.name,
            "message":   record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _command() -> str | None:
    return sys.argv[1] if len(sys.argv) > 1 else None


def get_logger(name: str, level: int | str | None = None) -> logging.Logger:
    """
    Return a configured logger for the given name.

    Parameters
    ----------
    name
        Logger name (typically __name__).
    level
        Log level (int or string); defaults to PMCHARTS_LOG_LEVEL or INFO.

    Returns
    -------
    logging.Logger
        Logger with console (and, for audited commands, JSON file) handlers.
    """
    if level is None:
        level = os.environ.get("PMCHARTS_LOG_LEVEL", "INFO").upper()
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        console = RichHandler(rich_tracebacks=True, show_path=False)
        console.setLevel(level)
        logger.addHandler(console)

        command = _command()
        if command in AUDITED_COMMANDS:
            audit = logging.FileHandler(Path.cwd() / f"{command}.log", mode="a", encoding="utf-8")
            audit.setLevel(level)
            audit.setFormatter(JSONFormatter())
            logger.addHandler(audit)

    return logger
