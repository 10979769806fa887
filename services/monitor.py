"""Evaluation pass orchestration for consumption alarms."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable, List, Optional, Tuple
from uuid import uuid4

from app.schemas import AlarmDraft, AlarmRecord, MonitoringConfiguration, PassSummary
from datastore.alarm_table import MockAlarmTable, build_default_alarm_table
from models.records import Sensor
from services.aggregator import ConsumptionAggregator
from services.deduplicator import Deduplicator
from services.errors import (
    AlarmAlreadyExistsError,
    AlarmPersistError,
    ConfigurationReadError,
    MonitoringError,
    PassTimeoutError,
)
from services.evaluator import AlarmEvaluator
from services.notifications import NotificationRouter
from settings import get_settings
from storage.configurations import MockConfigurationStore, build_default_configuration_store
from storage.readings import build_default_reading_store

logger = logging.getLogger(__name__)


class AlarmMonitor:
    """Runs evaluation passes over every active configuration and sensor.

    A pass is sequential: configurations in store order, then their sensors,
    then the daily, weekly and monthly checks. The first failure ends the
    pass; sensors not reached yet are picked up by the next pass.

    With ``atomic_dedup`` the existence check and the insert happen in one
    table operation. Without it the check and the insert are separate calls,
    so two overlapping passes can both create the same alarm.
    """

    def __init__(
        self,
        configurations: MockConfigurationStore,
        evaluator: AlarmEvaluator,
        table: MockAlarmTable,
        deduplicator: Deduplicator,
        router: Optional[NotificationRouter] = None,
        atomic_dedup: bool = True,
        pass_timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.configurations = configurations
        self.evaluator = evaluator
        self.table = table
        self.deduplicator = deduplicator
        self.router = router
        self.atomic_dedup = atomic_dedup
        self.pass_timeout_seconds = pass_timeout_seconds
        self.clock = clock

    def run_evaluation_pass(self, now: Optional[datetime] = None) -> PassSummary:
        """Evaluate all active sensors against ``now`` (defaults to the current UTC time).

        A naive ``now`` is read as wall-clock time in the evaluator's timezone.
        """
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=self.evaluator.timezone)
        summary = PassSummary(pass_id=uuid4().hex[:12], started_at=now)
        started = self.clock()
        deadline = started + self.pass_timeout_seconds if self.pass_timeout_seconds else None

        try:
            for configuration, sensors in self._load_configurations():
                for sensor in sensors:
                    if deadline is not None and self.clock() > deadline:
                        raise PassTimeoutError(
                            f"Pass exceeded {self.pass_timeout_seconds}s before sensor {sensor.id}."
                        )
                    self._evaluate_sensor(configuration, sensor, now, summary)
            summary.completed = True
        except Exception as exc:
            summary.error = f"{type(exc).__name__}: {exc}"
            logger.exception(
                "Evaluation pass aborted",
                extra={"pass_id": summary.pass_id, "reason": summary.error},
            )

        summary.finished_at = datetime.now(timezone.utc)
        logger.info(
            "Evaluation pass finished",
            extra={
                "pass_id": summary.pass_id,
                "sensors_evaluated": summary.sensors_evaluated,
                "alarms_created": len(summary.alarms_created),
                "alarms_suppressed": summary.alarms_suppressed,
                "duration_ms": int((self.clock() - started) * 1000),
            },
        )
        return summary

    def _load_configurations(self) -> List[Tuple[MonitoringConfiguration, List[Sensor]]]:
        try:
            return self.configurations.list_active_configurations()
        except Exception as exc:
            raise ConfigurationReadError(f"Could not list monitoring configurations: {exc}") from exc

    def _evaluate_sensor(
        self,
        configuration: MonitoringConfiguration,
        sensor: Sensor,
        now: datetime,
        summary: PassSummary,
    ) -> None:
        drafts = self.evaluator.evaluate(configuration, sensor, now)
        summary.sensors_evaluated += 1
        for draft in drafts:
            record = self._record(draft, now, summary.pass_id)
            if record is None:
                summary.alarms_suppressed += 1
                continue
            summary.alarms_created.append(record.id)
            self._notify(record, configuration, now)

    def _record(self, draft: AlarmDraft, now: datetime, pass_id: str) -> Optional[AlarmRecord]:
        context = {
            "pass_id": pass_id,
            "user_id": draft.user_id,
            "sensor_id": draft.sensor_id,
            "alarm_type": draft.alarm_type.value,
        }
        if self.atomic_dedup:
            try:
                record = self.table.create_alarm_if_absent(
                    draft, now, self.deduplicator.window_start(now)
                )
            except AlarmAlreadyExistsError:
                logger.debug("Alarm already exists", extra=context)
                return None
            except MonitoringError:
                raise
            except Exception as exc:
                raise AlarmPersistError(f"Could not persist alarm: {exc}") from exc
        else:
            if self.deduplicator.should_suppress(
                draft.user_id, draft.sensor_id, draft.alarm_type, now
            ):
                logger.debug("Alarm already exists", extra=context)
                return None
            try:
                record = self.table.create_alarm(draft, now)
            except Exception as exc:
                raise AlarmPersistError(f"Could not persist alarm: {exc}") from exc

        logger.info(
            "Alarm created: %s",
            record.title,
            extra={
                **context,
                "alarm_id": record.id,
                "severity": record.severity.value,
                "value": round(record.value, 2),
                "threshold": record.threshold,
            },
        )
        return record

    def _notify(
        self, record: AlarmRecord, configuration: MonitoringConfiguration, now: datetime
    ) -> None:
        if self.router is None:
            return
        try:
            channels = self.router.dispatch(record, configuration, now)
        except Exception:
            logger.exception(
                "Notification dispatch failed",
                extra={"alarm_id": record.id, "user_id": record.user_id},
            )
            return
        if channels:
            self.table.mark_notified(record.id)


@lru_cache
def build_default_monitor() -> AlarmMonitor:
    """Factory that wires the monitor with the default stores."""
    settings = get_settings()
    table = build_default_alarm_table()
    aggregator = ConsumptionAggregator(build_default_reading_store())
    return AlarmMonitor(
        configurations=build_default_configuration_store(),
        evaluator=AlarmEvaluator(aggregator, timezone=settings.timezone),
        table=table,
        deduplicator=Deduplicator(table, window=timedelta(hours=settings.dedup_window_hours)),
        router=NotificationRouter(timezone=settings.timezone),
        atomic_dedup=settings.atomic_dedup,
        pass_timeout_seconds=settings.pass_timeout_seconds,
    )
