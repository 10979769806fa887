"""Threshold checks for daily, weekly and monthly consumption."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Callable, List, Optional, Union

from app.schemas import AlarmDraft, AlarmSeverity, AlarmType, MonitoringConfiguration
from models.records import Sensor
from services.aggregator import ConsumptionAggregator
from services.windows import TimeWindow, day_window, month_window, resolve_timezone, week_window


@dataclass(frozen=True)
class _CategoryRule:
    alarm_type: AlarmType
    severity: AlarmSeverity
    label: str
    window: Callable[[datetime, tzinfo], TimeWindow]


_DAILY = _CategoryRule(AlarmType.DAILY_CONSUMPTION, AlarmSeverity.WARNING, "daily", day_window)
_WEEKLY = _CategoryRule(AlarmType.WEEKLY_CONSUMPTION, AlarmSeverity.WARNING, "weekly", week_window)
_MONTHLY = _CategoryRule(
    AlarmType.MONTHLY_CONSUMPTION, AlarmSeverity.CRITICAL, "monthly", month_window
)


def _format_limit(limit: float) -> str:
    return f"{limit:g}"


class AlarmEvaluator:
    """Builds alarm drafts for every enabled category whose aggregate breaches its limit.

    Categories are checked in the order daily, weekly, monthly. A breach is a
    strict greater-than; an aggregate equal to the limit does not alarm.
    """

    def __init__(
        self,
        aggregator: ConsumptionAggregator,
        timezone: Union[str, tzinfo, None] = None,
    ) -> None:
        self.aggregator = aggregator
        self.timezone = resolve_timezone(timezone)

    def evaluate(
        self, configuration: MonitoringConfiguration, sensor: Sensor, now: datetime
    ) -> List[AlarmDraft]:
        drafts: List[AlarmDraft] = []
        checks = (
            (_DAILY, configuration.daily_alarm_active, configuration.daily_consumption_limit),
            (_WEEKLY, configuration.weekly_alarm_active, configuration.weekly_consumption_limit),
            (
                _MONTHLY,
                configuration.monthly_alarm_active,
                configuration.monthly_consumption_limit,
            ),
        )
        for rule, enabled, limit in checks:
            draft = self._check(rule, enabled, limit, configuration, sensor, now)
            if draft is not None:
                drafts.append(draft)
        return drafts

    def _check(
        self,
        rule: _CategoryRule,
        enabled: bool,
        limit: Optional[float],
        configuration: MonitoringConfiguration,
        sensor: Sensor,
        now: datetime,
    ) -> Optional[AlarmDraft]:
        if not enabled or limit is None:
            return None

        consumption = self.aggregator.sum_window(sensor.serial, rule.window(now, self.timezone))
        if consumption <= limit:
            return None

        return AlarmDraft(
            user_id=configuration.user_id,
            sensor_id=sensor.id,
            alarm_type=rule.alarm_type,
            severity=rule.severity,
            title=f"{rule.label.capitalize()} limit exceeded",
            description=(
                f"{rule.label.capitalize()} consumption ({consumption:.2f}L) exceeded "
                f"the configured limit ({_format_limit(limit)}L)"
            ),
            value=consumption,
            threshold=limit,
        )
