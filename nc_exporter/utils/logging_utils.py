"""Unified logging utilities for the exporter."""
from __future__ import annotations

import json
import logging
import os
import sys
import time

from .env_flags import is_truthy_env

DEFAULT_FORMAT = '%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s'

SUPPRESSED_LOGGERS = [
    'urllib3', 'requests',
]


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            'ts': getattr(record, 'created', time.time()),
            'level': record.levelname,
            'logger': record.name,
            'thread': record.threadName,
            'msg': record.getMessage(),
        }
        if record.exc_info:
            payload['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(level: str = 'INFO', log_file: str | None = None, fmt: str = DEFAULT_FORMAT) -> logging.Logger:
    """Configure root logging.

    Console handler uses ``fmt`` unless NC_JSON_LOGS=1, in which case one JSON
    object is written per line. File handler (if enabled) always uses the full
    DEFAULT_FORMAT for diagnostics.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(log_level)
    # Remove existing handlers to avoid duplication on re-init
    for h in root.handlers[:]:
        root.removeHandler(h)
        h.flush()
        h.close()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)
    if is_truthy_env('NC_JSON_LOGS'):
        console.setFormatter(_JsonFormatter())
    else:
        console.setFormatter(logging.Formatter(fmt))
    root.addHandler(console)

    if log_file:
        try:
            directory = os.path.dirname(log_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            fh = logging.FileHandler(log_file, encoding='utf-8')
        except OSError as e:
            root.error("Failed to create log file handler for %s: %s", log_file, e)
        else:
            fh.setLevel(log_level)
            fh.setFormatter(logging.Formatter(DEFAULT_FORMAT))
            root.addHandler(fh)

    for name in SUPPRESSED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root

__all__ = ["setup_logging", "DEFAULT_FORMAT"]
