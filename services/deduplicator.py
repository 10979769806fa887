from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol

from app.schemas import AlarmType
from services.errors import AlarmPersistError

DEFAULT_DEDUP_WINDOW = timedelta(hours=24)


class RecentAlarmIndex(Protocol):
    def exists_recent_unresolved_alarm(
        self, user_id: str, sensor_id: int, alarm_type: AlarmType, since: datetime
    ) -> bool:
        ...


class Deduplicator:
    """Point-in-time check for an equivalent unresolved alarm inside the lookback window.

    Resolution state only matters inside the window: an alarm left unresolved
    for longer than the window no longer suppresses a new one.
    """

    def __init__(self, index: RecentAlarmIndex, window: timedelta = DEFAULT_DEDUP_WINDOW) -> None:
        if window <= timedelta(0):
            raise ValueError("Dedup window must be positive.")
        self.index = index
        self.window = window

    def window_start(self, now: datetime) -> datetime:
        return now - self.window

    def should_suppress(
        self, user_id: str, sensor_id: int, alarm_type: AlarmType, now: datetime
    ) -> bool:
        try:
            return self.index.exists_recent_unresolved_alarm(
                user_id, sensor_id, alarm_type, self.window_start(now)
            )
        except Exception as exc:
            raise AlarmPersistError(f"Could not query recent alarms: {exc}") from exc
