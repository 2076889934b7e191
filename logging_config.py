from __future__ import annotations

import logging
from logging.config import dictConfig
from pathlib import Path
from typing import Any, Dict, Iterable, Sequence

from settings import get_settings

_DEFAULT_EXTRA_KEYS = (
    "query",
    "tile",
    "source",
    "row_number",
    "reason",
    "record_count",
    "rejected_count",
    "provider",
    "status_code",
)

_configured = False


class ContextualFormatter(logging.Formatter):

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context_parts: list[str] = []
        for key in self._extra_keys:
            if not hasattr(record, key):
                continue
            value = getattr(record, key, None)
            if value is None:
                continue
            context_parts.append(f"{key}={value}")
        if context_parts:
            return f"{message} | {' '.join(context_parts)}"
        return message


def _file_handlers(log_dir: Path, log_level: str | int) -> Dict[str, Dict[str, Any]]:
    log_dir.mkdir(parents=True, exist_ok=True)
    return {
        "combined_file": {
            "class": "logging.FileHandler",
            "level": log_level,
            "formatter": "contextual",
            "filename": str(log_dir / "combined.log"),
            "encoding": "utf-8",
        },
        "error_file": {
            "class": "logging.FileHandler",
            "level": "ERROR",
            "formatter": "contextual",
            "filename": str(log_dir / "error.log"),
            "encoding": "utf-8",
        },
    }


def configure_logging(level: str | int | None = None, log_dir: str | None = None) -> None:
    """Configure application-wide logging with contextual formatting.

    Console output is always enabled. When a log directory is configured an
    append-only ``combined.log`` and an ERROR-only ``error.log`` are written
    there as well.
    """
    global _configured
    if _configured:
        return

    settings = get_settings()
    log_level = level if level is not None else settings.log_level
    target_dir = log_dir if log_dir is not None else settings.log_dir

    handlers: Dict[str, Dict[str, Any]] = {
        "default": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "contextual",
        }
    }
    if target_dir:
        handlers.update(_file_handlers(Path(target_dir), log_level))

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": "logging_config.ContextualFormatter",
                    "fmt": "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                    "style": "%",
                    "extra_keys": list(_DEFAULT_EXTRA_KEYS),
                }
            },
            "handlers": handlers,
            "root": {"handlers": list(handlers), "level": log_level},
        }
    )

    _configured = True
