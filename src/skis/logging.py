"""Structured JSON logging for skis.

Writes JSONL to .skis/skis.log with rotation (5MB, 3 backups).
"""

from __future__ import annotations

import json
import logging
import os
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOG_FILENAME = "skis.log"
_setup_lock = threading.Lock()
_MAX_BYTES = 5 * 1024 * 1024  # 5MB
_BACKUP_COUNT = 3
# ``extra=`` keys copied into the JSON entry; anything else is dropped.
_EXTRA_FIELDS = ("command", "duration_ms", "error")


class _JsonFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in _EXTRA_FIELDS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = str(record.exc_info[1])
        return json.dumps(entry, default=str)


def log_path(skis_dir: Path) -> Path:
    return skis_dir / LOG_FILENAME


def setup_logging(skis_dir: Path, level: int = logging.INFO) -> logging.Logger:
    """Attach a rotating JSONL handler for .skis/skis.log to the ``skis`` logger.

    Idempotent per target file; a handler left over for another repository
    is closed and replaced.
    """
    logger = logging.getLogger("skis")
    target = log_path(skis_dir)
    target_filename = os.path.abspath(str(target))

    with _setup_lock:
        for h in logger.handlers[:]:
            if not isinstance(h, RotatingFileHandler):
                continue
            if h.baseFilename == target_filename:
                return logger
            logger.removeHandler(h)
            h.close()

        handler = RotatingFileHandler(
            str(target),
            maxBytes=_MAX_BYTES,
            backupCount=_BACKUP_COUNT,
        )
        handler.setFormatter(_JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(level)
    return logger
