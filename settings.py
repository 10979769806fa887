from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


_CHECK_INTERVAL_ENV = "ALARM_CHECK_INTERVAL_SECONDS"
_DEDUP_WINDOW_ENV = "ALARM_DEDUP_WINDOW_HOURS"
_PASS_TIMEOUT_ENV = "ALARM_PASS_TIMEOUT_SECONDS"
_TIMEZONE_ENV = "ALARM_TIMEZONE"
_SCHEDULER_ENABLED_ENV = "ALARM_SCHEDULER_ENABLED"
_SINGLE_FLIGHT_ENV = "ALARM_SINGLE_FLIGHT"
_ATOMIC_DEDUP_ENV = "ALARM_ATOMIC_DEDUP"
_TABLE_PATH_ENV = "ALARM_TABLE_PERSISTENCE_PATH"
_READINGS_PATH_ENV = "READINGS_PERSISTENCE_PATH"
_MONITORING_PATH_ENV = "MONITORING_PERSISTENCE_PATH"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    check_interval_seconds: float
    dedup_window_hours: float
    pass_timeout_seconds: Optional[float]
    timezone: str
    scheduler_enabled: bool
    single_flight: bool
    atomic_dedup: bool
    alarm_table_path: Optional[str]
    readings_path: Optional[str]
    monitoring_path: Optional[str]
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_timezone(name: str, default: str) -> str:
    candidate = _read_str_env(name, default)
    try:
        ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError):
        return default
    return candidate


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


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


def _read_optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    if value is None:
        return None
    candidate = value.strip()
    if not candidate:
        return None
    try:
        parsed = float(candidate)
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUE_VALUES:
        return True
    if candidate in _FALSE_VALUES:
        return False
    return default


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
        check_interval_seconds=_read_positive_float(_CHECK_INTERVAL_ENV, 60.0),
        dedup_window_hours=_read_positive_float(_DEDUP_WINDOW_ENV, 24.0),
        pass_timeout_seconds=_read_optional_float(_PASS_TIMEOUT_ENV),
        timezone=_read_timezone(_TIMEZONE_ENV, "UTC"),
        scheduler_enabled=_read_bool(_SCHEDULER_ENABLED_ENV, True),
        single_flight=_read_bool(_SINGLE_FLIGHT_ENV, True),
        atomic_dedup=_read_bool(_ATOMIC_DEDUP_ENV, True),
        alarm_table_path=_read_optional_env(_TABLE_PATH_ENV, "./tmp/alarms.json"),
        readings_path=_read_optional_env(_READINGS_PATH_ENV, "./tmp/readings.json"),
        monitoring_path=_read_optional_env(_MONITORING_PATH_ENV, "./tmp/monitoring.json"),
        log_level=_read_log_level("INFO"),
    )
