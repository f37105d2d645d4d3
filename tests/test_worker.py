"""Tests for ScheduleWorker pass orchestration.

The selector and executor are mocked; store behaviour is covered in
test_executor.py and test_selector.py.
"""

import threading
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from notifyhub.engine.models import RunStatus, ScheduleRunResult
from notifyhub.engine.worker import ScheduleWorker
from notifyhub.persistence.exceptions import DatabaseConnectionError

NOW = datetime(2025, 3, 12, 9, 5)


def context(schedule_id):
    return Mock(schedule_id=schedule_id)


@pytest.fixture
def executor():
    mock = Mock()
    mock.execute.side_effect = lambda ctx, now: ScheduleRunResult(
        schedule_id=ctx.schedule_id, status=RunStatus.EXECUTED, sent_count=1
    )
    return mock


class TestScheduleWorker:
    """Test suite for ScheduleWorker."""

    def test_executes_schedules_in_selector_order(self, executor):
        selector = Mock()
        selector.select.return_value = [context(3), context(1), context(2)]
        worker = ScheduleWorker(selector, executor)

        result = worker.run_pass(NOW)

        selector.select.assert_called_once_with(NOW)
        assert [c.args[0].schedule_id for c in executor.execute.call_args_list] == [3, 1, 2]
        assert all(c.args[1] == NOW for c in executor.execute.call_args_list)
        assert [r.schedule_id for r in result.schedule_results] == [3, 1, 2]
        assert result.total_sent == 3
        assert not result.had_errors

    def test_empty_selection(self, executor):
        selector = Mock()
        selector.select.return_value = []

        result = ScheduleWorker(selector, executor).run_pass(NOW)

        assert result.schedule_results == []
        executor.execute.assert_not_called()

    def test_second_trigger_during_pass_is_skipped(self, executor):
        """A tick that arrives while a pass is in flight must not start another."""
        entered = threading.Event()
        release = threading.Event()
        selector = Mock()

        def slow_select(now):
            entered.set()
            release.wait(timeout=5)
            return []

        selector.select.side_effect = slow_select
        worker = ScheduleWorker(selector, executor)

        first = threading.Thread(target=worker.run_pass, args=(NOW,))
        first.start()
        assert entered.wait(timeout=5)

        assert worker.is_running
        second = worker.run_pass(NOW)

        assert second.skipped
        assert selector.select.call_count == 1

        release.set()
        first.join(timeout=5)
        assert not worker.is_running

        third = worker.run_pass(NOW)
        assert not third.skipped
        assert selector.select.call_count == 2

    def test_selector_failure_aborts_pass_and_releases_lock(self, executor):
        selector = Mock()
        selector.select.side_effect = [DatabaseConnectionError("database is locked"), []]
        worker = ScheduleWorker(selector, executor)

        failed = worker.run_pass(NOW)

        assert failed.error == "database is locked"
        assert failed.had_errors
        assert not worker.is_running
        executor.execute.assert_not_called()

        recovered = worker.run_pass(NOW)
        assert recovered.error is None

    def test_aborted_schedule_does_not_stop_the_pass(self):
        selector = Mock()
        selector.select.return_value = [context(1), context(2)]
        executor = Mock()
        executor.execute.side_effect = [
            ScheduleRunResult(schedule_id=1, status=RunStatus.ABORTED, error="boom"),
            ScheduleRunResult(schedule_id=2, status=RunStatus.EXECUTED, sent_count=2),
        ]

        result = ScheduleWorker(selector, executor).run_pass(NOW)

        assert result.aborted_count == 1
        assert result.total_sent == 2
        assert result.had_errors

    def test_lock_released_when_executor_raises(self):
        selector = Mock()
        selector.select.return_value = [context(1)]
        executor = Mock()
        executor.execute.side_effect = RuntimeError("unexpected")
        worker = ScheduleWorker(selector, executor)

        with pytest.raises(RuntimeError):
            worker.run_pass(NOW)

        assert not worker.is_running

    def test_defaults_to_wall_clock_in_zone(self, executor):
        selector = Mock()
        selector.select.return_value = []
        worker = ScheduleWorker(selector, executor, zone=timezone.utc)

        result = worker.run_pass()

        (now,) = selector.select.call_args.args
        assert now.tzinfo is None
        assert abs((datetime.now(timezone.utc).replace(tzinfo=None) - now).total_seconds()) < 60
        assert result.pass_id
