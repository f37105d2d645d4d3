"""Recurrence rules for schedules.

The single place that decides whether a schedule is due on a given day and
when it should run next. The selector only applies coarse store-side filters
and then defers to ``is_due_today`` through the executor.
"""

import calendar
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

from notifyhub.domain.models import ScheduleType, validate_schedule_time
from notifyhub.logging import get_logger

logger = get_logger(__name__, component="recurrence")

WEEKLY_INTERVAL_DAYS = 7


def _coerce_type(schedule_type: Union[ScheduleType, str]) -> Optional[ScheduleType]:
    try:
        return ScheduleType(schedule_type)
    except ValueError:
        logger.warning(
            f"Unknown schedule type: {schedule_type!r}",
            extra={"event": "recurrence.unknown_type", "schedule_type": str(schedule_type)},
        )
        return None


def parse_schedule_time(value: str) -> time:
    """Parse ``HH:MM`` (optionally ``HH:MM:SS``) into a time of day."""
    hours, minutes = validate_schedule_time(value).split(":")
    return time(int(hours), int(minutes))


def start_of_day(moment: datetime) -> datetime:
    """Midnight of ``moment``'s calendar day."""
    return datetime.combine(moment.date(), time.min)


def is_due_today(
    schedule_type: Union[ScheduleType, str],
    start_date: date,
    last_executed: Optional[datetime],
    today: date,
) -> bool:
    """Decide whether a schedule should fire on ``today``.

    Rules:
        - nothing fires before ``start_date``
        - nothing fires twice on the same calendar day
        - once: only if never executed
        - daily: every day
        - weekly: never executed, or 7+ whole days since the last run's date
        - monthly: never executed, or the (year, month) changed since the last run
        - unknown types never fire
    """
    kind = _coerce_type(schedule_type)
    if kind is None:
        return False

    if start_date > today:
        return False

    last_date = last_executed.date() if last_executed is not None else None
    if last_date == today:
        return False

    if kind is ScheduleType.ONCE:
        return last_date is None

    if kind is ScheduleType.DAILY:
        return True

    if kind is ScheduleType.WEEKLY:
        return last_date is None or (today - last_date).days >= WEEKLY_INTERVAL_DAYS

    # monthly
    return last_date is None or (today.year, today.month) != (last_date.year, last_date.month)


def add_months(day: date, months: int) -> date:
    """Shift ``day`` by ``months``, clamping to the last day of the target month.

    Example:
        >>> add_months(date(2025, 1, 31), 1)
        datetime.date(2025, 2, 28)
    """
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def next_execution(
    schedule_type: Union[ScheduleType, str],
    start_date: date,
    schedule_time: str,
    now: datetime,
) -> Optional[datetime]:
    """Compute the informational next run for a schedule that just ran at ``now``.

    ``once`` (and unknown types) return None. The result is never earlier than
    ``start_date``.
    """
    kind = _coerce_type(schedule_type)
    if kind is None or kind is ScheduleType.ONCE:
        return None

    base = now.date()
    if kind is ScheduleType.DAILY:
        target = base + timedelta(days=1)
    elif kind is ScheduleType.WEEKLY:
        target = base + timedelta(days=WEEKLY_INTERVAL_DAYS)
    else:
        target = add_months(base, 1)

    if target < start_date:
        target = start_date

    return datetime.combine(target, parse_schedule_time(schedule_time))
