"""Exception taxonomy for the alarm monitor."""

from __future__ import annotations


class MonitoringError(Exception):
    """Base class for failures raised while evaluating alarms."""


class ConfigurationReadError(MonitoringError):
    """Monitoring configurations or sensors could not be loaded."""


class AggregationReadError(MonitoringError):
    """Consumption readings could not be summed for a window."""


class AlarmPersistError(MonitoringError):
    """An alarm record could not be written or queried."""


class AlarmAlreadyExistsError(AlarmPersistError):
    """An equivalent unresolved alarm already exists inside the dedup window."""


class PassTimeoutError(MonitoringError):
    """An evaluation pass ran past its deadline."""
