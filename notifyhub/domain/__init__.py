"""Domain models for the notification engine."""

from .models import (
    DeliveryLogEntry,
    DeliveryStatus,
    NewSchedule,
    Notification,
    NotificationStatus,
    Recipient,
    ScheduleExecutionContext,
    ScheduleType,
    validate_schedule_time,
)

__all__ = [
    "ScheduleType",
    "NotificationStatus",
    "DeliveryStatus",
    "ScheduleExecutionContext",
    "Recipient",
    "Notification",
    "DeliveryLogEntry",
    "NewSchedule",
    "validate_schedule_time",
]
