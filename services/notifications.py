"""Routing of newly created alarms to a user's notification channels.

Delivery itself is pluggable through ``NotificationChannels``; the default
implementation only logs, so detection works without any delivery backend.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, tzinfo
from enum import Enum
from typing import List, Protocol, Union

from app.schemas import AlarmRecord, AlarmSeverity, MonitoringConfiguration
from services.windows import resolve_timezone

logger = logging.getLogger(__name__)


class Channel(str, Enum):
    SMS = "sms"
    EMAIL = "email"
    PUSH = "push"
    CHAT = "chat"


class NotificationChannels(Protocol):
    def send_email(self, alarm: AlarmRecord, configuration: MonitoringConfiguration) -> None:
        ...

    def send_sms(self, alarm: AlarmRecord, configuration: MonitoringConfiguration) -> None:
        ...

    def send_push(self, alarm: AlarmRecord, configuration: MonitoringConfiguration) -> None:
        ...

    def send_chat(self, alarm: AlarmRecord, configuration: MonitoringConfiguration) -> None:
        ...


class LoggingNotificationChannels:
    """Channel set that records what would have been sent."""

    def _log(self, channel: Channel, alarm: AlarmRecord) -> None:
        logger.info(
            "Notification queued: %s",
            alarm.title,
            extra={
                "channel": channel.value,
                "alarm_id": alarm.id,
                "user_id": alarm.user_id,
                "severity": alarm.severity.value,
            },
        )

    def send_email(self, alarm: AlarmRecord, configuration: MonitoringConfiguration) -> None:
        self._log(Channel.EMAIL, alarm)

    def send_sms(self, alarm: AlarmRecord, configuration: MonitoringConfiguration) -> None:
        self._log(Channel.SMS, alarm)

    def send_push(self, alarm: AlarmRecord, configuration: MonitoringConfiguration) -> None:
        self._log(Channel.PUSH, alarm)

    def send_chat(self, alarm: AlarmRecord, configuration: MonitoringConfiguration) -> None:
        self._log(Channel.CHAT, alarm)


def _within(moment: time, start: time, end: time) -> bool:
    if start < end:
        return start <= moment < end
    # Interval wraps midnight, e.g. 22:00-07:00.
    return moment >= start or moment < end


def is_quiet_hours(
    now: datetime,
    configuration: MonitoringConfiguration,
    zone: Union[str, tzinfo, None] = None,
) -> bool:
    """Whether ``now`` falls inside the configuration's local quiet-hours interval.

    Missing bounds, or equal start and end, mean there are no quiet hours.
    """
    start = configuration.quiet_hours_start
    end = configuration.quiet_hours_end
    if start is None or end is None or start == end:
        return False
    tz = resolve_timezone(zone)
    local = now.astimezone(tz) if now.tzinfo is not None else now.replace(tzinfo=tz)
    return _within(local.time().replace(tzinfo=None), start, end)


class NotificationRouter:
    """Sends an alarm on every enabled channel unless quiet hours apply.

    EMERGENCY alarms ignore quiet hours.
    """

    def __init__(
        self,
        channels: NotificationChannels | None = None,
        timezone: Union[str, tzinfo, None] = None,
    ) -> None:
        self.channels = channels if channels is not None else LoggingNotificationChannels()
        self.timezone = resolve_timezone(timezone)

    def enabled_channels(self, configuration: MonitoringConfiguration) -> List[Channel]:
        flags = (
            (Channel.SMS, configuration.notify_by_sms),
            (Channel.EMAIL, configuration.notify_by_email),
            (Channel.PUSH, configuration.notify_by_push),
            (Channel.CHAT, configuration.notify_by_chat),
        )
        return [channel for channel, enabled in flags if enabled]

    def dispatch(
        self, alarm: AlarmRecord, configuration: MonitoringConfiguration, now: datetime
    ) -> List[Channel]:
        if alarm.severity is not AlarmSeverity.EMERGENCY and is_quiet_hours(
            now, configuration, self.timezone
        ):
            logger.info(
                "Notification held for quiet hours",
                extra={"alarm_id": alarm.id, "user_id": alarm.user_id},
            )
            return []

        senders = {
            Channel.SMS: self.channels.send_sms,
            Channel.EMAIL: self.channels.send_email,
            Channel.PUSH: self.channels.send_push,
            Channel.CHAT: self.channels.send_chat,
        }
        dispatched: List[Channel] = []
        for channel in self.enabled_channels(configuration):
            senders[channel](alarm, configuration)
            dispatched.append(channel)
        return dispatched
