"""Unit tests for placeholder rendering and variable merging."""

import logging
from datetime import date, datetime

from notifyhub.domain.models import Recipient, ScheduleExecutionContext
from notifyhub.engine.renderer import (
    build_recipient_variables,
    parse_schedule_variables,
    render,
)


def make_context(**overrides) -> ScheduleExecutionContext:
    values = dict(
        schedule_id=7,
        template_id=3,
        department_id=1,
        sub_department_id=None,
        schedule_type="daily",
        schedule_time="09:00",
        start_date=date(2025, 1, 1),
        template_name="Standup",
        subject="Standup",
        body="Hi {{first_name}}",
        department_name="Engineering",
        sub_department_name=None,
    )
    values.update(overrides)
    return ScheduleExecutionContext(**values)


def make_recipient(**overrides) -> Recipient:
    values = dict(
        user_id=11, first_name="Sam", last_name="Lee", email="sam@example.com", phone_number=None
    )
    values.update(overrides)
    return Recipient(**values)


class TestRender:
    """Tests for render()."""

    def test_replaces_known_placeholder(self):
        assert render("Hello {{first_name}}", {"first_name": "Sam"}) == "Hello Sam"

    def test_keeps_unknown_placeholder_verbatim(self):
        assert render("Hi {{missing}}", {}) == "Hi {{missing}}"

    def test_allows_inner_whitespace(self):
        assert render("Hi {{  first_name }}!", {"first_name": "Ana"}) == "Hi Ana!"

    def test_replaces_every_occurrence(self):
        text = "{{x}} and {{ x }} and {{y}}"
        assert render(text, {"x": "1"}) == "1 and 1 and {{y}}"

    def test_single_pass_does_not_expand_values(self):
        assert render("{{a}}", {"a": "{{b}}", "b": "nope"}) == "{{b}}"

    def test_ignores_non_identifier_placeholders(self):
        assert render("{{ first-name }}", {"first-name": "x"}) == "{{ first-name }}"

    def test_empty_text(self):
        assert render("", {"a": "b"}) == ""

    def test_is_repeatable(self):
        variables = {"first_name": "Sam"}
        assert render("Hi {{first_name}}", variables) == render("Hi {{first_name}}", variables)


class TestParseScheduleVariables:
    """Tests for parse_schedule_variables()."""

    def test_decodes_object(self):
        assert parse_schedule_variables('{"room": "4B", "floor": 2}') == {
            "room": "4B",
            "floor": "2",
        }

    def test_stringifies_values(self):
        parsed = parse_schedule_variables('{"ok": true, "none": null, "list": [1, 2]}')
        assert parsed == {"ok": "true", "none": "", "list": "[1, 2]"}

    def test_empty_payload(self):
        assert parse_schedule_variables(None) == {}
        assert parse_schedule_variables("   ") == {}

    def test_malformed_json_yields_empty_and_warns(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert parse_schedule_variables("{not json") == {}
        assert any(
            getattr(r, "event", None) == "renderer.variables.malformed" for r in caplog.records
        )

    def test_non_object_yields_empty(self):
        assert parse_schedule_variables("[1, 2, 3]") == {}
        assert parse_schedule_variables('"text"') == {}


class TestBuildRecipientVariables:
    """Tests for build_recipient_variables()."""

    def test_identity_fields_override_schedule_vars(self):
        variables = build_recipient_variables(
            make_context(),
            make_recipient(),
            {"first_name": "Mallory", "email": "spoof@example.com", "room": "4B"},
            datetime(2025, 3, 7, 9, 5),
        )
        assert variables["first_name"] == "Sam"
        assert variables["email"] == "sam@example.com"
        assert variables["room"] == "4B"

    def test_context_fields_present(self):
        variables = build_recipient_variables(
            make_context(sub_department_name="Platform"),
            make_recipient(phone_number="555-0100"),
            {},
            datetime(2025, 3, 7, 9, 5),
        )
        assert variables["full_name"] == "Sam Lee"
        assert variables["phone_number"] == "555-0100"
        assert variables["department_name"] == "Engineering"
        assert variables["sub_department_name"] == "Platform"
        assert variables["template_name"] == "Standup"
        assert variables["schedule_id"] == "7"
        assert variables["current_date"] == "March 7, 2025"

    def test_missing_optional_fields_become_empty_strings(self):
        variables = build_recipient_variables(
            make_context(), make_recipient(), {}, datetime(2025, 3, 7)
        )
        assert variables["phone_number"] == ""
        assert variables["sub_department_name"] == ""
