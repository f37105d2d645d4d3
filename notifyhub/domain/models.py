"""Core domain models for schedules, recipients and notifications.

- ScheduleExecutionContext: one due schedule joined with its template and scope
- Recipient: an active user a schedule delivers to
- Notification / DeliveryLogEntry: what a run leaves behind for read surfaces
- NewSchedule: validated administrative input for creating a schedule
"""

import re
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

SCHEDULE_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class ScheduleType(str, Enum):
    """Recurrence patterns a schedule can follow."""

    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class NotificationStatus(str, Enum):
    """Lifecycle of one notification row."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    READ = "read"


class DeliveryStatus(str, Enum):
    """Outcome recorded for one delivery attempt."""

    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"
    BOUNCED = "bounced"


def validate_schedule_time(value: str) -> str:
    """Return ``value`` normalised to ``HH:MM`` or raise ValueError.

    A trailing ``:SS`` component is accepted and dropped.
    """
    text = (value or "").strip()
    if len(text) == 8 and text[5] == ":":
        text = text[:5]
    if not SCHEDULE_TIME_PATTERN.match(text):
        raise ValueError(f"schedule_time must be in HH:MM 24h format, got: {value!r}")
    return text


class ScheduleExecutionContext(BaseModel):
    """A due schedule with everything needed to render and dispatch it.

    Built by the selector from one joined query so the executor never has to
    look up the template or department per recipient.
    """

    schedule_id: int
    template_id: int
    department_id: int
    sub_department_id: Optional[int] = None
    schedule_type: ScheduleType
    schedule_time: str
    start_date: date
    end_date: Optional[date] = None
    template_variables: Optional[str] = Field(
        None, description="Raw JSON object of schedule-level variables, as stored"
    )
    last_executed: Optional[datetime] = None
    next_execution: Optional[datetime] = None
    template_name: str
    subject: str
    body: str
    department_name: str
    sub_department_name: Optional[str] = None

    @field_validator("schedule_time")
    @classmethod
    def check_schedule_time(cls, v: str) -> str:
        return validate_schedule_time(v)


class Recipient(BaseModel):
    """An active user assigned to a schedule."""

    user_id: int
    first_name: str
    last_name: str
    email: str
    phone_number: Optional[str] = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Notification(BaseModel):
    """One message instance for one recipient."""

    notification_id: int
    user_id: int
    template_id: Optional[int] = None
    schedule_id: Optional[int] = None
    department_id: int
    sub_department_id: Optional[int] = None
    subject: str
    body: str
    status: NotificationStatus
    sent_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    created_at: datetime


class DeliveryLogEntry(BaseModel):
    """One delivery attempt of a notification over a channel."""

    log_id: int
    notification_id: int
    channel_id: int
    delivery_status: DeliveryStatus
    error_message: Optional[str] = None
    delivery_attempts: int
    provider_message_id: Optional[str] = None
    delivered_at: Optional[datetime] = None
    created_at: datetime


class NewSchedule(BaseModel):
    """Administrative input for creating a schedule."""

    template_id: int
    department_id: int
    sub_department_id: Optional[int] = None
    schedule_type: ScheduleType
    schedule_time: str
    start_date: date
    end_date: Optional[date] = None
    template_variables: Dict[str, str] = Field(default_factory=dict)
    recipient_ids: List[int] = Field(default_factory=list)

    @field_validator("schedule_time")
    @classmethod
    def check_schedule_time(cls, v: str) -> str:
        return validate_schedule_time(v)

    @field_validator("template_variables", mode="before")
    @classmethod
    def stringify_variables(cls, v):
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("template_variables must be a mapping")
        return {str(key): "" if value is None else str(value) for key, value in v.items()}

    @field_validator("recipient_ids")
    @classmethod
    def dedupe_recipients(cls, v: List[int]) -> List[int]:
        return list(dict.fromkeys(v))

    @model_validator(mode="after")
    def check_date_window(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self
