from __future__ import annotations

import json
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Iterable, List, Optional

from models.records import ConsumptionReading
from settings import get_settings


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def sum_readings(
    readings: Iterable[ConsumptionReading], start: datetime, end: datetime
) -> float:
    """Sum consumption of readings stamped inside ``[start, end]``; ``None`` counts as zero."""
    start = _as_aware(start)
    end = _as_aware(end)
    total = 0.0
    for reading in readings:
        if start <= reading.reading_date <= end:
            total += reading.consumption or 0.0
    return total


class MockReadingStore:
    """Append-only consumption readings indexed by meter serial."""

    def __init__(self, name: str = "readings", persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._by_serial: Dict[str, List[ConsumptionReading]] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def add_reading(
        self, serial: str, reading_date: datetime, consumption: Optional[float]
    ) -> ConsumptionReading:
        reading = ConsumptionReading(
            serial=serial,
            reading_date=_as_aware(reading_date),
            consumption=consumption,
        )
        with self._lock:
            self._by_serial.setdefault(serial, []).append(reading)
            self._persist()
        return reading

    def readings_for(self, serial: str) -> list[ConsumptionReading]:
        with self._lock:
            return list(self._by_serial.get(serial, ()))

    def sum_consumption(self, serial: str, start: datetime, end: datetime) -> float:
        return sum_readings(self.readings_for(serial), start, end)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            serial: [
                {
                    "reading_date": reading.reading_date.isoformat(),
                    "consumption": reading.consumption,
                }
                for reading in readings
            ]
            for serial, readings in self._by_serial.items()
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

        for serial, rows in data.items():
            self._by_serial[serial] = [
                ConsumptionReading(
                    serial=serial,
                    reading_date=_as_aware(datetime.fromisoformat(row["reading_date"])),
                    consumption=row.get("consumption"),
                )
                for row in rows
            ]


@lru_cache
def build_default_reading_store(path: Optional[str] = None) -> MockReadingStore:
    settings = get_settings()
    store_path = settings.readings_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return MockReadingStore(persistence_path=persistence)
