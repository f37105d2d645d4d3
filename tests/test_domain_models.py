"""Tests for domain models."""

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from notifyhub.domain import (
    NewSchedule,
    Recipient,
    ScheduleExecutionContext,
    ScheduleType,
    validate_schedule_time,
)


def make_context(**overrides):
    fields = dict(
        schedule_id=1,
        template_id=2,
        department_id=3,
        schedule_type="daily",
        schedule_time="09:00",
        start_date=date(2025, 1, 1),
        template_name="Daily reminder",
        subject="Reminder",
        body="Hello",
        department_name="Engineering",
    )
    fields.update(overrides)
    return ScheduleExecutionContext(**fields)


class TestValidateScheduleTime:
    @pytest.mark.parametrize("value", ["00:00", "09:05", "23:59"])
    def test_accepts_hh_mm(self, value):
        assert validate_schedule_time(value) == value

    def test_drops_seconds(self):
        assert validate_schedule_time("09:00:00") == "09:00"

    def test_strips_whitespace(self):
        assert validate_schedule_time(" 07:30 ") == "07:30"

    @pytest.mark.parametrize("value", ["24:00", "9:00", "09:60", "0900", "", None])
    def test_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            validate_schedule_time(value)


class TestScheduleExecutionContext:
    def test_builds_from_stored_values(self):
        context = make_context(schedule_time="09:00:00", last_executed=datetime(2025, 3, 11, 9, 1))

        assert context.schedule_type == ScheduleType.DAILY
        assert context.schedule_time == "09:00"
        assert context.sub_department_id is None
        assert context.template_variables is None

    def test_rejects_unknown_schedule_type(self):
        with pytest.raises(ValidationError):
            make_context(schedule_type="hourly")

    def test_rejects_bad_time(self):
        with pytest.raises(ValidationError):
            make_context(schedule_time="25:00")


class TestRecipient:
    def test_display_name(self):
        recipient = Recipient(user_id=1, first_name="Ada", last_name="Lovelace", email="a@x.io")
        assert recipient.display_name == "Ada Lovelace"

    def test_display_name_with_empty_last_name(self):
        recipient = Recipient(user_id=1, first_name="Ada", last_name="", email="a@x.io")
        assert recipient.display_name == "Ada"


class TestNewSchedule:
    def make(self, **overrides):
        fields = dict(
            template_id=1,
            department_id=1,
            schedule_type="weekly",
            schedule_time="08:30",
            start_date=date(2025, 3, 1),
        )
        fields.update(overrides)
        return NewSchedule(**fields)

    def test_defaults(self):
        schedule = self.make()
        assert schedule.template_variables == {}
        assert schedule.recipient_ids == []
        assert schedule.end_date is None

    def test_variables_are_stringified(self):
        schedule = self.make(template_variables={"count": 3, "flag": True, "missing": None})
        assert schedule.template_variables == {"count": "3", "flag": "True", "missing": ""}

    def test_variables_must_be_mapping(self):
        with pytest.raises(ValidationError):
            self.make(template_variables=["a", "b"])

    def test_recipients_are_deduplicated_in_order(self):
        assert self.make(recipient_ids=[3, 1, 3, 2, 1]).recipient_ids == [3, 1, 2]

    def test_end_date_before_start_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self.make(end_date=date(2025, 2, 28))
        assert "end_date" in str(exc_info.value)

    def test_single_day_window_allowed(self):
        assert self.make(end_date=date(2025, 3, 1)).end_date == date(2025, 3, 1)
