"""Worker pass orchestration."""

import threading
import time
from datetime import datetime, timedelta, timezone, tzinfo
from typing import List, Optional
from uuid import uuid4

from notifyhub.logging import get_logger
from notifyhub.logging.context import log_context
from notifyhub.utils.timestamps import format_timestamp_for_log, local_now

from .executor import ScheduleExecutor
from .models import PassResult, ScheduleRunResult
from .selector import DueScheduleSelector

logger = get_logger(__name__, component="worker")


class ScheduleWorker:
    """
    Runs worker passes: select due schedules, then execute them one by one.

    At most one pass runs at a time. A trigger that fires while a pass is
    still in flight returns immediately with a skipped result.
    """

    def __init__(
        self,
        selector: DueScheduleSelector,
        executor: ScheduleExecutor,
        zone: tzinfo = timezone.utc,
    ):
        """
        Args:
            selector: Finds candidate schedules for a pass
            executor: Executes a single schedule
            zone: Timezone whose wall clock drives due decisions
        """
        self.selector = selector
        self.executor = executor
        self.zone = zone
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def run_pass(self, now: Optional[datetime] = None) -> PassResult:
        """
        Execute one pass.

        Args:
            now: Wall-clock time to evaluate schedules against (defaults to the
                current time in the worker's timezone)

        Returns:
            PassResult with per-schedule outcomes. Schedule-level failures are
            captured in the results; a selector failure sets ``error``.
        """
        pass_id = uuid4().hex
        started_at = now or local_now(self.zone)
        clock_start = time.monotonic()

        def finished() -> datetime:
            return started_at + timedelta(seconds=time.monotonic() - clock_start)

        if not self._lock.acquire(blocking=False):
            with log_context(pass_id=pass_id):
                logger.warning(
                    "Worker pass skipped: previous pass still in progress",
                    extra={"event": "worker.pass.skipped", "reason": "lock_held"},
                )
            return PassResult(
                pass_id=pass_id, started_at=started_at, finished_at=finished(), skipped=True
            )

        try:
            with log_context(pass_id=pass_id):
                logger.info(
                    "Worker pass started",
                    extra={
                        "event": "worker.pass.started",
                        "now": format_timestamp_for_log(started_at),
                    },
                )

                try:
                    contexts = self.selector.select(started_at)
                except Exception as e:
                    logger.error(
                        f"Worker pass failed while selecting schedules: {e}",
                        exc_info=True,
                        extra={"event": "worker.pass.failed", "error_type": type(e).__name__},
                    )
                    return PassResult(
                        pass_id=pass_id,
                        started_at=started_at,
                        finished_at=finished(),
                        error=str(e),
                    )

                results: List[ScheduleRunResult] = []
                for context in contexts:
                    results.append(self.executor.execute(context, started_at))

                result = PassResult(
                    pass_id=pass_id,
                    started_at=started_at,
                    finished_at=finished(),
                    schedule_results=results,
                )

                logger.info(
                    "Worker pass completed",
                    extra={
                        "event": "worker.pass.completed",
                        "duration_ms": int(result.duration_seconds * 1000),
                        "schedule_count": len(results),
                        "total_sent": result.total_sent,
                        "total_failed": result.total_failed,
                        "aborted_count": result.aborted_count,
                    },
                )
                return result

        finally:
            self._lock.release()
