"""Schedule execution engine: selection, recurrence, rendering and passes."""

from .executor import ScheduleExecutor
from .models import PassResult, RunStatus, ScheduleRunResult
from .recurrence import is_due_today, next_execution, parse_schedule_time, start_of_day
from .renderer import build_recipient_variables, parse_schedule_variables, render
from .selector import DueScheduleSelector
from .worker import ScheduleWorker

__all__ = [
    "ScheduleWorker",
    "ScheduleExecutor",
    "DueScheduleSelector",
    "PassResult",
    "ScheduleRunResult",
    "RunStatus",
    "is_due_today",
    "next_execution",
    "parse_schedule_time",
    "start_of_day",
    "render",
    "parse_schedule_variables",
    "build_recipient_variables",
]
