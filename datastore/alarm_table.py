from __future__ import annotations

import json
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from app.schemas import AlarmDraft, AlarmRecord, AlarmType
from services.errors import AlarmAlreadyExistsError
from settings import get_settings


class MockAlarmTable:
    """Alarm history keyed by alarm id.

    ``create_alarm`` never merges with existing records. Callers that need
    the existence check and the insert to be atomic use
    ``create_alarm_if_absent``, which runs both under the table lock.
    """

    def __init__(self, name: str = "alarm_history", persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._items: Dict[str, AlarmRecord] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def create_alarm(self, draft: AlarmDraft, now: datetime) -> AlarmRecord:
        with self._lock:
            return self._insert(draft, now)

    def create_alarm_if_absent(
        self, draft: AlarmDraft, now: datetime, since: datetime
    ) -> AlarmRecord:
        with self._lock:
            existing = self._find_recent_unresolved(
                draft.user_id, draft.sensor_id, draft.alarm_type, since
            )
            if existing is not None:
                raise AlarmAlreadyExistsError(
                    f"Unresolved {draft.alarm_type.value} alarm {existing.id!r} already exists "
                    f"for sensor {draft.sensor_id}."
                )
            return self._insert(draft, now)

    def exists_recent_unresolved_alarm(
        self, user_id: str, sensor_id: int, alarm_type: AlarmType, since: datetime
    ) -> bool:
        with self._lock:
            return self._find_recent_unresolved(user_id, sensor_id, alarm_type, since) is not None

    def get_item(self, alarm_id: str) -> Optional[AlarmRecord]:
        with self._lock:
            item = self._items.get(alarm_id)
            if item is None:
                return None
            return item.model_copy(deep=True)

    def put_item(self, item: AlarmRecord) -> None:
        with self._lock:
            self._items[item.id] = item.model_copy(deep=True)
            self._persist()

    def mark_notified(self, alarm_id: str) -> None:
        """Set only the ``notified`` flag so concurrent resolutions are kept."""
        with self._lock:
            item = self._items.get(alarm_id)
            if item is None:
                return
            item.notified = True
            self._persist()

    def acknowledge_alarm(self, alarm_id: str, actor: str, now: datetime) -> AlarmRecord:
        with self._lock:
            item = self._require(alarm_id)
            if item.acknowledged:
                raise ValueError(f"Alarm {alarm_id!r} is already acknowledged.")
            item.acknowledged = True
            item.acknowledged_at = now
            item.acknowledged_by = actor
            self._persist()
            return item.model_copy(deep=True)

    def resolve_alarm(self, alarm_id: str, actor: str, now: datetime) -> AlarmRecord:
        with self._lock:
            item = self._require(alarm_id)
            if item.resolved:
                raise ValueError(f"Alarm {alarm_id!r} is already resolved.")
            item.resolved = True
            item.resolved_at = now
            item.resolved_by = actor
            if not item.acknowledged:
                item.acknowledged = True
                item.acknowledged_at = now
                item.acknowledged_by = actor
            self._persist()
            return item.model_copy(deep=True)

    def scan(self) -> list[AlarmRecord]:
        """Return deep copies of all stored alarms, newest first."""

        with self._lock:
            items = [item.model_copy(deep=True) for item in self._items.values()]
        return sorted(items, key=lambda item: item.timestamp, reverse=True)

    def _insert(self, draft: AlarmDraft, now: datetime) -> AlarmRecord:
        record = AlarmRecord(**draft.model_dump(), timestamp=now)
        self._items[record.id] = record
        self._persist()
        return record.model_copy(deep=True)

    def _require(self, alarm_id: str) -> AlarmRecord:
        item = self._items.get(alarm_id)
        if item is None:
            raise KeyError(f"Alarm {alarm_id!r} not found.")
        return item

    def _find_recent_unresolved(
        self, user_id: str, sensor_id: int, alarm_type: AlarmType, since: datetime
    ) -> Optional[AlarmRecord]:
        for item in self._items.values():
            if (
                item.user_id == user_id
                and item.sensor_id == sensor_id
                and item.alarm_type == alarm_type
                and not item.resolved
                and item.timestamp >= since
            ):
                return item
        return None

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            alarm_id: item.model_dump(mode="json") for alarm_id, item in self._items.items()
        }
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        for alarm_id, payload in data.items():
            self._items[alarm_id] = AlarmRecord.model_validate(payload)


@lru_cache
def build_default_alarm_table(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> MockAlarmTable:
    settings = get_settings()
    table_path = settings.alarm_table_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return MockAlarmTable(name=name or "alarm_history", persistence_path=persistence)
