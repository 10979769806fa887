from __future__ import annotations

from typing import Iterable

from datastore.alarm_table import build_default_alarm_table
from services.monitor import build_default_monitor
from services.scheduler import build_default_scheduler
from settings import get_settings
from storage.configurations import build_default_configuration_store
from storage.readings import build_default_reading_store

_CACHES = (
    get_settings,
    build_default_alarm_table,
    build_default_reading_store,
    build_default_configuration_store,
    build_default_monitor,
    build_default_scheduler,
)


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


def test_defaults_apply_when_environment_is_blank(monkeypatch) -> None:
    monkeypatch.setenv("ALARM_CHECK_INTERVAL_SECONDS", "  ")
    monkeypatch.setenv("ALARM_DEDUP_WINDOW_HOURS", "-4")
    monkeypatch.setenv("ALARM_SINGLE_FLIGHT", "maybe")
    monkeypatch.setenv("ALARM_TIMEZONE", "Mars/Olympus_Mons")
    monkeypatch.delenv("ALARM_PASS_TIMEOUT_SECONDS", raising=False)
    get_settings.cache_clear()

    try:
        settings = get_settings()
        assert settings.check_interval_seconds == 60.0
        assert settings.dedup_window_hours == 24.0
        assert settings.single_flight is True
        assert settings.atomic_dedup is True
        assert settings.pass_timeout_seconds is None
        assert settings.timezone == "UTC"
    finally:
        get_settings.cache_clear()


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    table_path = tmp_path / "alarms.json"
    readings_path = tmp_path / "readings.json"
    monitoring_path = tmp_path / "monitoring.json"

    monkeypatch.setenv("ALARM_TABLE_PERSISTENCE_PATH", str(table_path))
    monkeypatch.setenv("READINGS_PERSISTENCE_PATH", str(readings_path))
    monkeypatch.setenv("MONITORING_PERSISTENCE_PATH", str(monitoring_path))
    monkeypatch.setenv("ALARM_CHECK_INTERVAL_SECONDS", "15")
    monkeypatch.setenv("ALARM_DEDUP_WINDOW_HOURS", "6")
    monkeypatch.setenv("ALARM_PASS_TIMEOUT_SECONDS", "30")
    monkeypatch.setenv("ALARM_TIMEZONE", "America/Lima")
    monkeypatch.setenv("ALARM_SINGLE_FLIGHT", "false")
    monkeypatch.setenv("ALARM_ATOMIC_DEDUP", "0")

    _clear_caches(_CACHES)

    try:
        table = build_default_alarm_table()
        monitor = build_default_monitor()
        scheduler = build_default_scheduler()

        assert table.persistence_path == table_path
        assert build_default_reading_store().persistence_path == readings_path
        assert build_default_configuration_store().persistence_path == monitoring_path
        assert monitor.table is table
        assert monitor.atomic_dedup is False
        assert monitor.pass_timeout_seconds == 30.0
        assert monitor.deduplicator.window.total_seconds() == 6 * 3600
        assert str(monitor.evaluator.timezone) == "America/Lima"
        assert scheduler.interval_seconds == 15.0
        assert scheduler.single_flight is False
        assert scheduler.running is False
    finally:
        _clear_caches(_CACHES)
