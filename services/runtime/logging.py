"""Structured logging helpers for runtime services."""

from __future__ import annotations

import logging
import os
import sys
import time
import uuid
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

import orjson

_TRACE_KEY = "trace_id"

# Attributes present on every LogRecord; anything else arrived through ``extra``.
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Render log records as JSON with optional trace metadata."""

    def format(self, record: logging.LogRecord) -> str:
        base: Dict[str, Any] = {
            "ts": time.time(),
            "level": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
        }
        for key, value in record.__dict__.items():
            if key in _RESERVED or key.startswith("_"):
                continue
            base[key] = value
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(base, default=str).decode()


def setup_logging(log_path: Optional[Path] = None, level_name: Optional[str] = None) -> None:
    """Install a JSON formatter on the root logger using LOG_LEVEL."""

    level_name = (level_name or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    formatter = JsonFormatter()
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=3)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)


def with_trace(extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Attach a fresh trace identifier to structured log metadata."""

    payload: Dict[str, Any] = {_TRACE_KEY: str(uuid.uuid4())}
    if extra:
        payload.update(extra)
    return payload


__all__ = ["JsonFormatter", "setup_logging", "with_trace"]
