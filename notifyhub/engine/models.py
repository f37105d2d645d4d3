"""Data models for worker pass tracking and reporting."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class RunStatus(str, Enum):
    """How one schedule's run ended."""

    EXECUTED = "executed"
    SKIPPED = "skipped"
    NO_RECIPIENTS = "no_recipients"
    ABORTED = "aborted"


@dataclass
class ScheduleRunResult:
    """
    Outcome of executing one schedule within a pass.

    Attributes:
        schedule_id: Schedule that was processed
        status: executed, skipped, no_recipients or aborted
        sent_count: Recipients whose dispatch succeeded
        failed_count: Recipients whose dispatch failed or raised
        next_execution: Value written to the schedule (executed runs only)
        error: Error message when the run was aborted
        duration_seconds: Time spent on this schedule
    """

    schedule_id: int
    status: RunStatus
    sent_count: int = 0
    failed_count: int = 0
    next_execution: Optional[datetime] = None
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def committed(self) -> bool:
        return self.status != RunStatus.ABORTED


@dataclass
class PassResult:
    """
    Aggregate results from one worker pass.

    Attributes:
        pass_id: Correlation id pushed into the logging context
        started_at: Wall-clock time the pass began
        finished_at: Wall-clock time the pass ended
        schedule_results: Per-schedule outcomes in selector order
        skipped: True when a previous pass still held the lock
        error: Set when the pass itself failed (e.g. the selector query)
    """

    pass_id: str
    started_at: datetime
    finished_at: datetime
    schedule_results: List[ScheduleRunResult] = field(default_factory=list)
    skipped: bool = False
    error: Optional[str] = None

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def total_sent(self) -> int:
        return sum(r.sent_count for r in self.schedule_results)

    @property
    def total_failed(self) -> int:
        return sum(r.failed_count for r in self.schedule_results)

    @property
    def aborted_count(self) -> int:
        return sum(1 for r in self.schedule_results if r.status == RunStatus.ABORTED)

    @property
    def had_errors(self) -> bool:
        return self.error is not None or self.aborted_count > 0
