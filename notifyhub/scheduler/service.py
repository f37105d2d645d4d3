"""Periodic trigger for worker passes."""

import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from notifyhub.logging import get_logger
from notifyhub.utils.timestamps import format_timestamp_for_log

logger = get_logger(__name__, component="scheduler")

JOB_ID = "schedule-worker"


class SchedulerService:
    """
    Wraps APScheduler to fire worker passes at a fixed cadence.

    Uses BackgroundScheduler so passes run off the main thread, which stays
    free to handle signals and coordinate shutdown.
    """

    def __init__(
        self,
        tick_callable: Callable[[], object],
        interval_seconds: int,
        shutdown_event: Optional[threading.Event] = None,
        run_on_startup: bool = True,
    ):
        """
        Initialize the scheduler service.

        Args:
            tick_callable: Function to call on each tick (e.g., worker.run_pass)
            interval_seconds: Interval between ticks in seconds
            shutdown_event: Optional event to set on shutdown for coordination
            run_on_startup: Fire the first tick immediately instead of after one interval
        """
        self.tick_callable = tick_callable
        self.interval_seconds = interval_seconds
        self.shutdown_event = shutdown_event
        self.run_on_startup = run_on_startup
        self._stopped = False

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": interval_seconds,
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        """Register the worker job and start the background scheduler."""
        trigger = IntervalTrigger(seconds=self.interval_seconds, timezone=timezone.utc)

        job_kwargs = {}
        if self.run_on_startup:
            job_kwargs["next_run_time"] = datetime.now(timezone.utc)

        self.scheduler.add_job(
            func=self.tick_callable,
            trigger=trigger,
            id=JOB_ID,
            name="Notification schedule worker",
            replace_existing=True,
            **job_kwargs,
        )
        self.scheduler.start()
        self._stopped = False

        next_run = self.get_next_run_time()
        logger.info(
            f"Scheduler started with interval: {self.interval_seconds} seconds",
            extra={
                "event": "scheduler.started",
                "interval_seconds": self.interval_seconds,
                "next_run_time": format_timestamp_for_log(next_run),
            },
        )

    def shutdown(self, wait: bool = False) -> None:
        """
        Stop firing ticks. Calling it again is a no-op.

        Args:
            wait: If True, wait for an in-flight pass to complete before returning
        """
        if self._stopped:
            return
        self._stopped = True

        logger.info(
            "Shutting down scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self):
        """Run one tick synchronously in the current thread and return its result."""
        logger.info("Triggering immediate worker pass", extra={"event": "scheduler.trigger_now"})
        return self.tick_callable()

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self) -> Optional[datetime]:
        job = self.scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None
