from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional, Tuple

from app.schemas import MonitoringConfiguration
from models.records import Sensor, SensorStatus
from settings import get_settings


class MockConfigurationStore:
    """Monitoring configurations keyed by user, plus the sensors each user owns.

    Iteration order follows insertion order for both configurations and
    sensors, which fixes the order an evaluation pass visits them in.
    """

    def __init__(self, name: str = "monitoring", persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._configurations: Dict[str, MonitoringConfiguration] = {}
        self._sensors: Dict[int, Sensor] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_configuration(self, configuration: MonitoringConfiguration) -> None:
        with self._lock:
            self._configurations[configuration.user_id] = configuration.model_copy(deep=True)
            self._persist()

    def get_configuration(self, user_id: str) -> Optional[MonitoringConfiguration]:
        with self._lock:
            configuration = self._configurations.get(user_id)
            if configuration is None:
                return None
            return configuration.model_copy(deep=True)

    def put_sensor(self, sensor: Sensor) -> None:
        with self._lock:
            self._sensors[sensor.id] = sensor
            self._persist()

    def get_sensor(self, sensor_id: int) -> Optional[Sensor]:
        with self._lock:
            return self._sensors.get(sensor_id)

    def list_active_configurations(
        self,
    ) -> List[Tuple[MonitoringConfiguration, List[Sensor]]]:
        """Configurations with any consumption category enabled, each with its ACTIVE sensors."""

        with self._lock:
            pairs = []
            for configuration in self._configurations.values():
                if not configuration.has_active_category:
                    continue
                sensors = [
                    sensor
                    for sensor in self._sensors.values()
                    if sensor.user_id == configuration.user_id and sensor.is_active
                ]
                pairs.append((configuration.model_copy(deep=True), sensors))
            return pairs

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            "configurations": [
                item.model_dump(mode="json") for item in self._configurations.values()
            ],
            "sensors": [
                {
                    "id": sensor.id,
                    "serial": sensor.serial,
                    "user_id": sensor.user_id,
                    "status": sensor.status.value,
                    "name": sensor.name,
                }
                for sensor in self._sensors.values()
            ],
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

        for payload in data.get("configurations", []):
            configuration = MonitoringConfiguration.model_validate(payload)
            self._configurations[configuration.user_id] = configuration
        for payload in data.get("sensors", []):
            sensor = Sensor(
                id=int(payload["id"]),
                serial=payload["serial"],
                user_id=payload["user_id"],
                status=SensorStatus(payload["status"]),
                name=payload.get("name"),
            )
            self._sensors[sensor.id] = sensor


@lru_cache
def build_default_configuration_store(path: Optional[str] = None) -> MockConfigurationStore:
    settings = get_settings()
    store_path = settings.monitoring_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return MockConfigurationStore(persistence_path=persistence)
