"""Pydantic schemas shared by the alarm stores and the HTTP API layer."""

from __future__ import annotations

from datetime import datetime, time
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class AlarmType(str, Enum):
    """Alarm categories. Technical members are reserved for future evaluators."""

    DAILY_CONSUMPTION = "DAILY_CONSUMPTION"
    WEEKLY_CONSUMPTION = "WEEKLY_CONSUMPTION"
    MONTHLY_CONSUMPTION = "MONTHLY_CONSUMPTION"
    LOW_BATTERY = "LOW_BATTERY"
    NO_COMMUNICATION = "NO_COMMUNICATION"


class AlarmSeverity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    EMERGENCY = "EMERGENCY"


class MonitoringConfiguration(BaseModel):
    """Per-user alarm thresholds, enable flags and notification preferences."""

    user_id: str
    daily_consumption_limit: float = Field(3.0, ge=0)
    weekly_consumption_limit: float = Field(8000.0, ge=0)
    monthly_consumption_limit: Optional[float] = Field(
        default=None, ge=0, description="No monthly limit when unset."
    )
    battery_low_threshold: float = 2.5
    daily_alarm_active: bool = True
    weekly_alarm_active: bool = True
    monthly_alarm_active: bool = False
    technical_alarms_active: bool = True
    notify_by_sms: bool = False
    notify_by_email: bool = True
    notify_by_push: bool = False
    notify_by_chat: bool = False
    quiet_hours_start: Optional[time] = None
    quiet_hours_end: Optional[time] = None

    @property
    def has_active_category(self) -> bool:
        return self.daily_alarm_active or self.weekly_alarm_active or self.monthly_alarm_active


class MonitoringConfigurationUpdate(BaseModel):
    """Request payload for upserting a user's alarm settings."""

    daily_consumption_limit: float = Field(3.0, ge=0)
    weekly_consumption_limit: float = Field(8000.0, ge=0)
    monthly_consumption_limit: Optional[float] = Field(default=None, ge=0)
    battery_low_threshold: float = 2.5
    daily_alarm_active: bool = True
    weekly_alarm_active: bool = True
    monthly_alarm_active: bool = False
    technical_alarms_active: bool = True
    notify_by_sms: bool = False
    notify_by_email: bool = True
    notify_by_push: bool = False
    notify_by_chat: bool = False
    quiet_hours_start: Optional[time] = None
    quiet_hours_end: Optional[time] = None


class AlarmDraft(BaseModel):
    """An alarm the evaluator wants to raise, before it is persisted."""

    user_id: str
    sensor_id: int
    alarm_type: AlarmType
    severity: AlarmSeverity
    title: str
    description: str
    value: float
    threshold: float


class AlarmRecord(AlarmDraft):
    """Persisted alarm with its acknowledgement and resolution lifecycle."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime
    resolved: bool = False
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    acknowledged: bool = False
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    notified: bool = False


class AlarmActionRequest(BaseModel):
    """Optional actor recorded when acknowledging or resolving an alarm."""

    actor: str = Field("system", min_length=1)


class PassSummary(BaseModel):
    """Outcome of a single evaluation pass."""

    pass_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    sensors_evaluated: int = Field(0, ge=0)
    alarms_created: List[str] = Field(default_factory=list)
    alarms_suppressed: int = Field(0, ge=0)
    completed: bool = False
    error: Optional[str] = None
