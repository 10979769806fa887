"""Calendar windows used to aggregate consumption.

Every window is closed on both ends and expressed in the caller's local
timezone: the end instant is the last microsecond before the next period
starts, so readings stamped exactly at either boundary are included.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Union
from zoneinfo import ZoneInfo

_LAST_TICK = timedelta(microseconds=1)


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime

    def __contains__(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


def resolve_timezone(zone: Union[str, tzinfo, None]) -> tzinfo:
    if zone is None:
        return ZoneInfo("UTC")
    if isinstance(zone, str):
        return ZoneInfo(zone)
    return zone


def _local(now: datetime, zone: Union[str, tzinfo, None]) -> datetime:
    tz = resolve_timezone(zone)
    if now.tzinfo is None:
        return now.replace(tzinfo=tz)
    return now.astimezone(tz)


def _midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def _window(first_day: date, next_first_day: date, tz: tzinfo) -> TimeWindow:
    return TimeWindow(
        start=_midnight(first_day, tz),
        end=_midnight(next_first_day, tz) - _LAST_TICK,
    )


def day_window(now: datetime, zone: Union[str, tzinfo, None] = None) -> TimeWindow:
    """Today, from local midnight to the end of the day."""
    local = _local(now, zone)
    today = local.date()
    return _window(today, today + timedelta(days=1), local.tzinfo)


def week_window(now: datetime, zone: Union[str, tzinfo, None] = None) -> TimeWindow:
    """The ISO week containing ``now``, Monday 00:00 through Sunday's last instant."""
    local = _local(now, zone)
    monday = local.date() - timedelta(days=local.weekday())
    return _window(monday, monday + timedelta(days=7), local.tzinfo)


def month_window(now: datetime, zone: Union[str, tzinfo, None] = None) -> TimeWindow:
    """The calendar month containing ``now``."""
    local = _local(now, zone)
    first = local.date().replace(day=1)
    days_in_month = calendar.monthrange(first.year, first.month)[1]
    return _window(first, first + timedelta(days=days_in_month), local.tzinfo)
