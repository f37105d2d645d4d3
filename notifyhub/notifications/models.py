"""Data models and exceptions for notification dispatch.

Channels raise nothing to the executor: transport failures are captured in a
DispatchResult. The exceptions below are used inside the notification layer
and for misconfiguration (asking for a channel that cannot dispatch).
"""

from dataclasses import dataclass
from typing import Optional


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class NotificationTemplateError(NotificationError):
    """Raised when the email layout templates cannot be rendered."""

    pass


class SMTPDeliveryError(NotificationError):
    """Raised by the SMTP client when a single delivery attempt fails."""

    pass


class ChannelNotAvailableError(NotificationError):
    """Raised when a channel is unknown or reserved but not dispatchable."""

    pass


@dataclass
class DispatchResult:
    """Outcome of one delivery attempt over a channel.

    Attributes:
        success: Whether the transport accepted the message
        provider_message_id: Transport message id (e.g. the email Message-ID)
        error_detail: Human-readable failure reason when success is False
    """

    success: bool
    provider_message_id: Optional[str] = None
    error_detail: Optional[str] = None

    @classmethod
    def delivered(cls, provider_message_id: Optional[str] = None) -> "DispatchResult":
        return cls(success=True, provider_message_id=provider_message_id)

    @classmethod
    def failed(cls, error_detail: str) -> "DispatchResult":
        return cls(success=False, error_detail=error_detail)
