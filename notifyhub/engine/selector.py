"""Due-schedule selection."""

from datetime import datetime
from typing import List

from notifyhub.domain.models import ScheduleExecutionContext
from notifyhub.logging import get_logger
from notifyhub.persistence.database import get_session
from notifyhub.persistence.repositories import ScheduleRepository

from .recurrence import start_of_day

logger = get_logger(__name__, component="selector")


class DueScheduleSelector:
    """Finds schedules that may be due at a given wall-clock time.

    Read-only. Runs in its own short transaction and applies only the coarse
    store filters; the executor makes the authoritative due decision.
    """

    def select(self, now: datetime) -> List[ScheduleExecutionContext]:
        """
        Return eligible schedules, earliest schedule_time first.

        Args:
            now: Naive wall-clock time in the engine's timezone

        Raises:
            PersistenceError: If the query fails
        """
        time_of_day = now.strftime("%H:%M")
        with get_session() as session:
            contexts = ScheduleRepository(session).select_due(
                today=now.date(), time_of_day=time_of_day, day_start=start_of_day(now)
            )

        logger.info(
            f"Found {len(contexts)} schedule(s) to execute",
            extra={
                "event": "selector.schedules.found",
                "count": len(contexts),
                "time_of_day": time_of_day,
                "schedule_ids": [c.schedule_id for c in contexts],
            },
        )
        return contexts
