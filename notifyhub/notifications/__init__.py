"""Notification dispatch: channels, the SMTP transport and email layouts.

- DispatchChannel / EmailChannel: one delivery attempt, outcome as DispatchResult
- ChannelRegistry: channel name -> implementation (email only; in_app/sms reserved)
- SMTPClient: smtplib wrapper with TLS/SSL, auth and a socket timeout
- EmailLayoutRenderer: Jinja2 HTML/plain-text layouts around a rendered body
"""

from .channels import (
    EMAIL_CHANNEL,
    ChannelRegistry,
    DispatchChannel,
    EmailChannel,
    build_email_channel,
)
from .models import (
    ChannelNotAvailableError,
    DispatchResult,
    NotificationError,
    NotificationTemplateError,
    SMTPDeliveryError,
)
from .smtp_client import SMTPClient, build_sender_address, normalize_recipient
from .templates import EmailLayoutRenderer

__all__ = [
    # Channels
    "EMAIL_CHANNEL",
    "DispatchChannel",
    "EmailChannel",
    "ChannelRegistry",
    "build_email_channel",
    # Models and results
    "DispatchResult",
    # Exceptions
    "NotificationError",
    "NotificationTemplateError",
    "SMTPDeliveryError",
    "ChannelNotAvailableError",
    # Components
    "SMTPClient",
    "EmailLayoutRenderer",
    # Utilities
    "build_sender_address",
    "normalize_recipient",
]
