"""Tests for the email channel, its layouts and the channel registry."""

from unittest.mock import Mock

import pytest

from notifyhub.config.environment import EnvironmentConfig
from notifyhub.config.models import EmailConfig
from notifyhub.notifications import (
    ChannelNotAvailableError,
    ChannelRegistry,
    EmailChannel,
    EmailLayoutRenderer,
    SMTPDeliveryError,
    build_email_channel,
)
from notifyhub.notifications.models import NotificationTemplateError

SENDER = '"Notification System" <noreply@example.com>'


@pytest.fixture
def smtp_client():
    return Mock()


@pytest.fixture
def channel(smtp_client):
    return EmailChannel(smtp_client, SENDER)


class TestEmailLayoutRenderer:
    def test_html_part_escapes_body(self):
        parts = EmailLayoutRenderer().render(
            "Subject", "Line <1>\nLine & 2", recipient_name="Sam Lee"
        )

        assert "Dear Sam Lee," in parts["html_body"]
        assert "Line &lt;1&gt;<br>" in parts["html_body"]
        assert "Line &amp; 2" in parts["html_body"]

    def test_text_part_is_not_escaped(self):
        parts = EmailLayoutRenderer().render("Subject", "Fish & chips", recipient_name="Sam")

        assert parts["text_body"].startswith("Dear Sam,")
        assert "Fish & chips" in parts["text_body"]

    def test_missing_template_raises(self):
        renderer = EmailLayoutRenderer(html_template="does_not_exist.html.j2")
        with pytest.raises(NotificationTemplateError):
            renderer.render("s", "b", "n")


class TestEmailChannel:
    def test_successful_send_returns_message_id(self, channel, smtp_client):
        result = channel.send("alice@example.com", "Hello", "Hi Alice", "Alice Smith")

        assert result.success
        assert result.error_detail is None
        (message,) = smtp_client.send.call_args.args
        assert message["To"] == "alice@example.com"
        assert message["From"].addresses[0].addr_spec == "noreply@example.com"
        assert message["Subject"] == "Hello"
        assert result.provider_message_id == message["Message-ID"]
        assert result.provider_message_id.endswith("@example.com>")

    def test_message_has_text_and_html_parts(self, channel, smtp_client):
        channel.send("alice@example.com", "Hello", "Hi Alice", "Alice Smith")

        (message,) = smtp_client.send.call_args.args
        assert message.get_body(preferencelist=("plain",)) is not None
        assert message.get_body(preferencelist=("html",)) is not None

    def test_multiline_subject_is_flattened(self, channel, smtp_client):
        channel.send("alice@example.com", "Line one\nLine two", "Body", "Alice")

        (message,) = smtp_client.send.call_args.args
        assert message["Subject"] == "Line one Line two"

    def test_transport_failure_becomes_result(self, channel, smtp_client):
        smtp_client.send.side_effect = SMTPDeliveryError("Network error: timed out")

        result = channel.send("alice@example.com", "Hello", "Hi", "Alice")

        assert not result.success
        assert result.provider_message_id is None
        assert "timed out" in result.error_detail

    def test_invalid_address_fails_without_transport(self, channel, smtp_client):
        result = channel.send("not-an-address", "Hello", "Hi", "Nobody")

        assert not result.success
        assert "not-an-address" in result.error_detail
        smtp_client.send.assert_not_called()

    def test_verify_delegates_to_client(self, channel, smtp_client):
        channel.verify()
        smtp_client.verify.assert_called_once_with()


class TestChannelRegistry:
    def test_returns_registered_channel(self, channel):
        registry = ChannelRegistry([channel])
        assert registry.get("email") is channel
        assert registry.names() == ["email"]

    @pytest.mark.parametrize("name", ["in_app", "sms"])
    def test_reserved_channels_are_not_available(self, channel, name):
        registry = ChannelRegistry([channel])
        with pytest.raises(ChannelNotAvailableError) as exc_info:
            registry.get(name)
        assert "reserved" in str(exc_info.value)

    def test_unknown_channel(self):
        with pytest.raises(ChannelNotAvailableError):
            ChannelRegistry().get("pigeon")


def test_build_email_channel_uses_config():
    env_config = EnvironmentConfig(
        smtp_host="smtp.example.com", smtp_port=587, from_email="ops@example.com"
    )
    channel = build_email_channel(env_config, EmailConfig(use_tls=False, timeout_seconds=7))

    assert channel.name == "email"
    assert channel.sender == '"Notification System" <ops@example.com>'
    assert channel.smtp_client.timeout_seconds == 7
    assert channel.smtp_client.use_tls is False
