"""
Logging setup and structured event helpers.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Optional, Union

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_FILE_NAME = "harvester.log"
LOG_MAX_BYTES = 1_024_000
LOG_BACKUP_COUNT = 3


def resolve_level(level: Union[str, int, None]) -> int:
    if level is None:
        level = os.getenv("HARVEST_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        return _LEVELS.get(level.upper(), logging.INFO)
    return level


def setup_logging(log_dir: Optional[str] = None, level: Union[str, int, None] = None) -> logging.Logger:
    """
    Configure the ``harvester`` logger with a console handler and, when
    ``log_dir`` is given, a size-rotated log file inside it.
    """
    root = logging.getLogger("harvester")
    root.setLevel(resolve_level(level))
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, LOG_FILE_NAME),
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.propagate = False
    return root


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """
    Emit one structured log line as compact JSON.
    """
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, ensure_ascii=False, sort_keys=True))
