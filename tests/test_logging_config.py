"""Tests for logging configuration and formatters."""

import json
import logging
import sys
from datetime import datetime

import pytest

from notifyhub.logging import ComponentLoggerAdapter, get_logger
from notifyhub.logging.config import (
    ContextualFilter,
    JSONFormatter,
    KeyValueFormatter,
    configure_logging,
)
from notifyhub.logging.context import log_context


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest left it."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def make_record(message="Test message", level=logging.INFO, **extra):
    record = logging.LogRecord("notifyhub.test", level, "test.py", 1, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_mandatory_fields(self):
        payload = json.loads(JSONFormatter().format(make_record()))

        assert payload["level"] == "INFO"
        assert payload["logger"] == "notifyhub.test"
        assert payload["message"] == "Test message"
        assert payload["timestamp"].endswith("Z")

    def test_extra_fields_are_included(self):
        record = make_record(event="schedule.executed", schedule_id=7, sent=True)

        payload = json.loads(JSONFormatter().format(record))

        assert payload["event"] == "schedule.executed"
        assert payload["schedule_id"] == 7
        assert payload["sent"] is True

    def test_non_json_values_are_converted(self):
        record = make_record(
            next_execution=datetime(2025, 3, 13, 9, 0), target=object()
        )

        payload = json.loads(JSONFormatter().format(record))

        assert payload["next_execution"] == "2025-03-13T09:00:00"
        assert payload["target"].startswith("<object object")

    def test_exception_is_included(self):
        try:
            raise ValueError("bad value")
        except ValueError:
            record = logging.LogRecord(
                "notifyhub.test", logging.ERROR, "test.py", 1, "failed", (), sys.exc_info()
            )

        payload = json.loads(JSONFormatter().format(record))

        assert "ValueError: bad value" in payload["exc_info"]


class TestKeyValueFormatter:
    def test_appends_sorted_pairs(self):
        formatter = KeyValueFormatter("%(levelname)s %(message)s")
        record = make_record(schedule_id=3, event="schedule.executed")

        assert formatter.format(record) == "INFO Test message event=schedule.executed schedule_id=3"

    def test_quotes_values_with_spaces(self):
        formatter = KeyValueFormatter("%(message)s")
        record = make_record(error="550 mailbox unavailable", ok=False, detail=None)

        line = formatter.format(record)

        assert 'error="550 mailbox unavailable"' in line
        assert "ok=false" in line
        assert "detail=null" in line

    def test_hides_service_metadata(self):
        formatter = KeyValueFormatter("%(message)s")
        record = make_record(service="notifyhub-worker", environment="test")

        assert formatter.format(record) == "Test message"


class TestContextualFilter:
    def test_adds_service_and_context(self):
        record = make_record()
        with log_context(pass_id="abc", schedule_id=4):
            assert ContextualFilter(environment="test").filter(record)

        assert record.service == "notifyhub-worker"
        assert record.environment == "test"
        assert record.pass_id == "abc"
        assert record.schedule_id == 4

    def test_explicit_extra_wins_over_context(self):
        record = make_record(schedule_id=99)
        with log_context(schedule_id=4):
            ContextualFilter().filter(record)

        assert record.schedule_id == 99


class TestComponentLogger:
    def test_plain_logger_without_component(self):
        assert isinstance(get_logger("notifyhub.test"), logging.Logger)

    def test_component_is_stamped(self, caplog):
        logger = get_logger("notifyhub.test", component="executor")
        assert isinstance(logger, ComponentLoggerAdapter)

        with caplog.at_level(logging.INFO, logger="notifyhub.test"):
            logger.info("hello", extra={"event": "test.event"})

        record = caplog.records[-1]
        assert record.component == "executor"
        assert record.event == "test.event"

    def test_bind_adds_fields(self, caplog):
        logger = get_logger("notifyhub.test", component="worker").bind(pass_id="p1")

        with caplog.at_level(logging.INFO, logger="notifyhub.test"):
            logger.info("bound")

        record = caplog.records[-1]
        assert record.component == "worker"
        assert record.pass_id == "p1"


class TestConfigureLogging:
    def test_installs_single_handler(self, restore_root_logger):
        configure_logging("DEBUG", "json", environment="test")

        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert logging.getLogger("apscheduler").level == logging.WARNING

    def test_key_value_format(self, restore_root_logger):
        configure_logging("info", "key-value")

        assert isinstance(restore_root_logger.handlers[0].formatter, KeyValueFormatter)

    def test_invalid_level(self, restore_root_logger):
        with pytest.raises(ValueError):
            configure_logging("LOUD")

    def test_invalid_format(self, restore_root_logger):
        with pytest.raises(ValueError):
            configure_logging("INFO", "xml")
