from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_DATASET_PATH_ENV = "SPEED_DATASET_PATH"
_PROVIDER_ENV = "NOTIFICATION_PROVIDER"
_WEBHOOK_URL_ENV = "NOTIFICATION_WEBHOOK_URL"
_NOTIFY_TIMEOUT_ENV = "NOTIFICATION_TIMEOUT"
_NOTIFY_WORKERS_ENV = "NOTIFICATION_WORKER_COUNT"
_NOTIFY_PENDING_ENV = "NOTIFICATION_MAX_PENDING"
_CORS_ORIGINS_ENV = "CORS_ALLOW_ORIGINS"
_REFRESH_ENV = "DASHBOARD_REFRESH_SECONDS"
_PORT_ENV = "PORT"
_LOG_LEVEL_ENV = "LOG_LEVEL"
_LOG_DIR_ENV = "LOG_DIR"


@dataclass(frozen=True)
class Settings:
    dataset_path: str
    notification_provider: str
    notification_webhook_url: Optional[str]
    notification_timeout: float
    notification_workers: int
    notification_max_pending: int
    cors_allow_origins: tuple[str, ...]
    dashboard_refresh_seconds: int
    port: int
    log_level: str
    log_dir: Optional[str]


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_origins(default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.getenv(_CORS_ORIGINS_ENV)
    if value is None:
        return default
    origins = tuple(part.strip() for part in value.split(",") if part.strip())
    return origins or default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        dataset_path=_read_str_env(_DATASET_PATH_ENV, "./data/sample.csv"),
        notification_provider=_read_str_env(_PROVIDER_ENV, "none").lower(),
        notification_webhook_url=_read_optional_env(_WEBHOOK_URL_ENV, None),
        notification_timeout=_read_positive_float(_NOTIFY_TIMEOUT_ENV, 5.0),
        notification_workers=_read_positive_int(_NOTIFY_WORKERS_ENV, 2),
        notification_max_pending=_read_positive_int(_NOTIFY_PENDING_ENV, 100),
        cors_allow_origins=_read_origins(("*",)),
        dashboard_refresh_seconds=_read_positive_int(_REFRESH_ENV, 60),
        port=_read_positive_int(_PORT_ENV, 3001),
        log_level=_read_log_level("INFO"),
        log_dir=_read_optional_env(_LOG_DIR_ENV, None),
    )
