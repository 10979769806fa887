"""Overlapping evaluation passes against the same breached sensor."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

from app.schemas import MonitoringConfiguration
from datastore.alarm_table import MockAlarmTable
from models.records import Sensor
from services.aggregator import ConsumptionAggregator
from services.deduplicator import Deduplicator
from services.evaluator import AlarmEvaluator
from services.monitor import AlarmMonitor
from storage.configurations import MockConfigurationStore
from storage.readings import MockReadingStore

_NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


def _stores() -> tuple[MockConfigurationStore, MockReadingStore]:
    configurations = MockConfigurationStore()
    configurations.put_configuration(
        MonitoringConfiguration(
            user_id="user-1",
            daily_consumption_limit=3000,
            weekly_consumption_limit=8000,
            weekly_alarm_active=False,
        )
    )
    configurations.put_sensor(Sensor(id=1, serial="S1", user_id="user-1"))
    readings = MockReadingStore()
    readings.add_reading("S1", _NOW - timedelta(hours=2), 4000)
    return configurations, readings


def _run_two_passes(monitor: AlarmMonitor):
    with ThreadPoolExecutor(max_workers=2) as executor:
        futures = [
            executor.submit(monitor.run_evaluation_pass, _NOW),
            executor.submit(monitor.run_evaluation_pass, _NOW + timedelta(milliseconds=5)),
        ]
        return [future.result(timeout=5) for future in futures]


def test_check_then_act_passes_can_both_create_the_alarm() -> None:
    barrier = threading.Barrier(2)

    class SlowInsertTable(MockAlarmTable):
        def create_alarm(self, draft, now):
            # Both passes have already run their existence check at this point.
            barrier.wait(timeout=2)
            return super().create_alarm(draft, now)

    configurations, readings = _stores()
    table = SlowInsertTable()
    monitor = AlarmMonitor(
        configurations=configurations,
        evaluator=AlarmEvaluator(ConsumptionAggregator(readings), timezone="UTC"),
        table=table,
        deduplicator=Deduplicator(table),
        atomic_dedup=False,
    )

    summaries = _run_two_passes(monitor)

    assert all(summary.completed for summary in summaries)
    assert len(table.scan()) == 2


def test_atomic_dedup_keeps_a_single_alarm_under_overlap() -> None:
    barrier = threading.Barrier(2)

    class LockstepEvaluator(AlarmEvaluator):
        def evaluate(self, configuration, sensor, now):
            drafts = super().evaluate(configuration, sensor, now)
            barrier.wait(timeout=2)
            return drafts

    configurations, readings = _stores()
    table = MockAlarmTable()
    monitor = AlarmMonitor(
        configurations=configurations,
        evaluator=LockstepEvaluator(ConsumptionAggregator(readings), timezone="UTC"),
        table=table,
        deduplicator=Deduplicator(table),
        atomic_dedup=True,
    )

    summaries = _run_two_passes(monitor)

    assert len(table.scan()) == 1
    assert sorted(len(summary.alarms_created) for summary in summaries) == [0, 1]
    assert sum(summary.alarms_suppressed for summary in summaries) == 1
