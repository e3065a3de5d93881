from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_HISTORY_LIMIT_ENV = "READING_HISTORY_LIMIT"
_QUEUE_SIZE_ENV = "SUBSCRIBER_QUEUE_SIZE"
_SENSOR_PREFIX_ENV = "SENSOR_ID_PREFIX"
_DEFAULT_LEVEL_ENV = "DEFAULT_READING_LEVEL"
_HOST_ENV = "RELAY_HOST"
_PORT_ENV = "RELAY_PORT"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    history_limit: int
    subscriber_queue_size: int
    sensor_id_prefix: str
    default_level: str
    host: str
    port: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


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
        history_limit=_read_positive_int(_HISTORY_LIMIT_ENV, 200),
        subscriber_queue_size=_read_positive_int(_QUEUE_SIZE_ENV, 100),
        sensor_id_prefix=_read_str_env(_SENSOR_PREFIX_ENV, "sensor-"),
        default_level=_read_str_env(_DEFAULT_LEVEL_ENV, "unknown"),
        host=_read_str_env(_HOST_ENV, "0.0.0.0"),
        port=_read_positive_int(_PORT_ENV, 9090),
        log_level=_read_log_level("INFO"),
    )
