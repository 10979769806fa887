"""Metering records shared across stores and services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class SensorStatus(str, Enum):
    """Lifecycle status of a metering device."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    MAINTENANCE = "MAINTENANCE"
    FAULTY = "FAULTY"


@dataclass(frozen=True, slots=True)
class Sensor:
    """A meter owned by a user; ``serial`` joins it to its readings."""

    id: int
    serial: str
    user_id: str
    status: SensorStatus = SensorStatus.ACTIVE
    name: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status is SensorStatus.ACTIVE


@dataclass(frozen=True, slots=True)
class ConsumptionReading:
    """A single consumption delta reported by a meter."""

    serial: str
    reading_date: datetime
    consumption: Optional[float] = None
