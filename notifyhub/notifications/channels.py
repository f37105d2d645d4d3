"""Dispatch channels.

A channel performs exactly one delivery attempt and reports the outcome as a
DispatchResult. Retrying is the caller's business.
"""

from abc import ABC, abstractmethod
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Dict, Iterable, Optional

from notifyhub.config.environment import EnvironmentConfig
from notifyhub.config.models import EmailConfig
from notifyhub.logging import get_logger

from .models import (
    ChannelNotAvailableError,
    DispatchResult,
    NotificationError,
)
from .smtp_client import SMTPClient, build_sender_address, normalize_recipient
from .templates import EmailLayoutRenderer

logger = get_logger(__name__, component="channel")

EMAIL_CHANNEL = "email"
RESERVED_CHANNELS = ("in_app", "sms")


class DispatchChannel(ABC):
    """Delivery mechanism for a rendered notification."""

    name: str

    @abstractmethod
    def send(self, to: str, subject: str, body: str, recipient_name: str) -> DispatchResult:
        """Attempt delivery once. Must not raise for transport failures."""

    def verify(self) -> None:
        """Check the underlying transport is usable. Raises on failure."""


class EmailChannel(DispatchChannel):
    """Email delivery over SMTP with a plain-text part and an HTML alternative."""

    name = EMAIL_CHANNEL

    def __init__(
        self,
        smtp_client: SMTPClient,
        sender: str,
        layout_renderer: Optional[EmailLayoutRenderer] = None,
    ):
        self.smtp_client = smtp_client
        self.sender = sender
        self.layout_renderer = layout_renderer or EmailLayoutRenderer()

    def build_message(
        self, to: str, subject: str, body: str, recipient_name: str
    ) -> EmailMessage:
        parts = self.layout_renderer.render(subject, body, recipient_name)

        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = " ".join(subject.splitlines())
        message["Date"] = formatdate(localtime=True)
        message["Message-ID"] = make_msgid(domain=self._sender_domain())
        message.set_content(parts["text_body"])
        message.add_alternative(parts["html_body"], subtype="html")
        return message

    def _sender_domain(self) -> Optional[str]:
        address = self.sender.rsplit("<", 1)[-1].rstrip(">")
        _, _, domain = address.partition("@")
        return domain or None

    def send(self, to: str, subject: str, body: str, recipient_name: str) -> DispatchResult:
        try:
            address = normalize_recipient(to)
        except ValueError as e:
            logger.warning(
                str(e),
                extra={"event": "channel.email.invalid_recipient", "channel": self.name},
            )
            return DispatchResult.failed(str(e))

        try:
            message = self.build_message(address, subject, body, recipient_name)
            self.smtp_client.send(message)
        except NotificationError as e:
            logger.warning(
                f"Email delivery failed: {e}",
                extra={
                    "event": "channel.email.failed",
                    "channel": self.name,
                    "error_type": type(e).__name__,
                },
            )
            return DispatchResult.failed(str(e))

        message_id = message["Message-ID"]
        logger.debug(
            "Email accepted by transport",
            extra={
                "event": "channel.email.sent",
                "channel": self.name,
                "provider_message_id": message_id,
            },
        )
        return DispatchResult.delivered(message_id)

    def verify(self) -> None:
        self.smtp_client.verify()


class ChannelRegistry:
    """Maps channel names from the channel registry table to implementations."""

    def __init__(self, channels: Iterable[DispatchChannel] = ()):
        self._channels: Dict[str, DispatchChannel] = {}
        for channel in channels:
            self.register(channel)

    def register(self, channel: DispatchChannel) -> None:
        self._channels[channel.name] = channel

    def get(self, name: str) -> DispatchChannel:
        """
        Raises:
            ChannelNotAvailableError: If the channel is reserved or unknown
        """
        channel = self._channels.get(name)
        if channel is not None:
            return channel
        if name in RESERVED_CHANNELS:
            raise ChannelNotAvailableError(f"Channel '{name}' is reserved and cannot dispatch yet")
        raise ChannelNotAvailableError(f"Unknown channel '{name}'")

    def names(self):
        return sorted(self._channels)


def build_email_channel(env_config: EnvironmentConfig, email_config: EmailConfig) -> EmailChannel:
    """Construct the production email channel from configuration."""
    smtp_client = SMTPClient(
        env_config,
        use_tls=email_config.use_tls,
        timeout_seconds=email_config.timeout_seconds,
    )
    return EmailChannel(smtp_client, build_sender_address(env_config))
