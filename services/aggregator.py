"""Consumption aggregation over closed time windows."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol

from services.errors import AggregationReadError
from services.windows import TimeWindow

logger = logging.getLogger(__name__)


class ConsumptionSource(Protocol):
    def sum_consumption(self, serial: str, start: datetime, end: datetime) -> float:
        ...


class ConsumptionAggregator:
    """Sums metered consumption for one meter over an inclusive interval."""

    def __init__(self, source: ConsumptionSource) -> None:
        self.source = source

    def sum(self, serial: str, start: datetime, end: datetime) -> float:
        if end < start:
            raise ValueError("Window end precedes its start.")
        try:
            total = self.source.sum_consumption(serial, start, end)
        except Exception as exc:
            raise AggregationReadError(
                f"Could not sum consumption for meter {serial!r}: {exc}"
            ) from exc
        logger.debug(
            "Summed consumption %s..%s",
            start.isoformat(),
            end.isoformat(),
            extra={"serial": serial, "value": total},
        )
        return float(total or 0.0)

    def sum_window(self, serial: str, window: TimeWindow) -> float:
        return self.sum(serial, window.start, window.end)
