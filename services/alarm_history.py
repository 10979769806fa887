"""Read access and the acknowledge/resolve workflow for stored alarms."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import List, Optional

from app.schemas import AlarmRecord
from datastore.alarm_table import MockAlarmTable, build_default_alarm_table

logger = logging.getLogger(__name__)


class AlarmHistoryService:
    """Moves alarms from UNRESOLVED to RESOLVED; nothing ever reopens them."""

    def __init__(self, table: MockAlarmTable) -> None:
        self.table = table

    def list_alarms(self, resolved: Optional[bool] = None) -> List[AlarmRecord]:
        items = self.table.scan()
        if resolved is None:
            return items
        return [item for item in items if item.resolved is resolved]

    def get_alarm(self, alarm_id: str) -> AlarmRecord:
        alarm = self.table.get_item(alarm_id)
        if alarm is None:
            raise KeyError(f"Alarm {alarm_id!r} not found.")
        return alarm

    def acknowledge(
        self, alarm_id: str, actor: str = "system", now: Optional[datetime] = None
    ) -> AlarmRecord:
        alarm = self.table.acknowledge_alarm(alarm_id, actor, now or datetime.now(timezone.utc))
        logger.info("Alarm acknowledged by %s", actor, extra={"alarm_id": alarm_id})
        return alarm

    def resolve(
        self, alarm_id: str, actor: str = "system", now: Optional[datetime] = None
    ) -> AlarmRecord:
        """Resolve an alarm, acknowledging it too if nobody has yet."""
        alarm = self.table.resolve_alarm(alarm_id, actor, now or datetime.now(timezone.utc))
        logger.info("Alarm resolved by %s", actor, extra={"alarm_id": alarm_id})
        return alarm


@lru_cache
def build_default_alarm_history() -> AlarmHistoryService:
    return AlarmHistoryService(build_default_alarm_table())
