"""SMTP client wrapper for email delivery.

This module provides a thin wrapper around Python's smtplib with support
for TLS/SSL, authentication, a bounded socket timeout and proper connection
lifecycle management. One call to ``send`` is one connection and one attempt.
"""

import smtplib
import ssl
from email.message import EmailMessage
from typing import Callable, Optional

from email_validator import EmailNotValidError, validate_email

from notifyhub.config.environment import EnvironmentConfig
from notifyhub.logging import get_logger

from .models import SMTPDeliveryError

logger = get_logger(__name__, component="smtp")

IMPLICIT_TLS_PORT = 465
DEFAULT_TIMEOUT_SECONDS = 30


class SMTPClient:
    """Wrapper around smtplib for sending email messages.

    Handles connection lifecycle, TLS/SSL negotiation and authentication.
    Factories are injectable so tests never open sockets.
    """

    def __init__(
        self,
        env_config: EnvironmentConfig,
        use_tls: bool = True,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
    ):
        """Initialize SMTP client.

        Args:
            env_config: Environment configuration with SMTP settings
            use_tls: Whether to upgrade plain connections with STARTTLS
            timeout_seconds: Socket timeout applied to every transport operation
            smtp_factory: Factory function for creating SMTP instances (for mocking)
            smtp_ssl_factory: Factory function for creating SMTP_SSL instances (for mocking)
        """
        self.env_config = env_config
        self.use_tls = use_tls
        self.timeout_seconds = timeout_seconds
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.smtp_ssl_factory = smtp_ssl_factory or smtplib.SMTP_SSL

    def _connect(self):
        host, port = self.env_config.smtp_host, self.env_config.smtp_port
        if port == IMPLICIT_TLS_PORT:
            logger.debug(f"Connecting to {host}:{port} with implicit TLS")
            return self.smtp_ssl_factory(
                host, port, timeout=self.timeout_seconds, context=ssl.create_default_context()
            )

        logger.debug(f"Connecting to {host}:{port}")
        return self.smtp_factory(host, port, timeout=self.timeout_seconds)

    def _open_session(self):
        smtp = self._connect()
        try:
            if self.use_tls and self.env_config.smtp_port != IMPLICIT_TLS_PORT:
                logger.debug("Upgrading connection with STARTTLS")
                smtp.starttls(context=ssl.create_default_context())

            if self.env_config.has_credentials:
                logger.debug(f"Authenticating as {self.env_config.smtp_user}")
                smtp.login(self.env_config.smtp_user, self.env_config.smtp_pass)
            else:
                logger.debug("No authentication credentials provided, proceeding without auth")
        except Exception:
            self._close(smtp)
            raise
        return smtp

    @staticmethod
    def _close(smtp) -> None:
        try:
            smtp.quit()
        except Exception as e:
            logger.warning(f"Error closing SMTP connection: {e}")

    def send(self, message: EmailMessage) -> None:
        """Send an email message via SMTP.

        Args:
            message: Fully constructed EmailMessage to send

        Raises:
            SMTPDeliveryError: If message delivery fails
        """
        smtp = None
        try:
            smtp = self._open_session()
            smtp.send_message(message)
            logger.debug(f"Message sent successfully to {message['To']}")
        except smtplib.SMTPException as e:
            raise SMTPDeliveryError(f"SMTP error during message delivery: {e}") from e
        except OSError as e:
            # socket.timeout is an OSError subclass
            raise SMTPDeliveryError(f"Network error during SMTP connection: {e}") from e
        except Exception as e:
            raise SMTPDeliveryError(f"Unexpected error during SMTP delivery: {e}") from e
        finally:
            if smtp is not None:
                self._close(smtp)

    def verify(self) -> None:
        """Open and close one authenticated session to prove the transport works.

        Raises:
            SMTPDeliveryError: If the server cannot be reached or rejects login
        """
        try:
            smtp = self._open_session()
        except (smtplib.SMTPException, OSError) as e:
            raise SMTPDeliveryError(
                f"SMTP transport check failed for "
                f"{self.env_config.smtp_host}:{self.env_config.smtp_port}: {e}"
            ) from e
        self._close(smtp)
        logger.info(
            "SMTP transport verified",
            extra={
                "event": "smtp.verified",
                "smtp_host": self.env_config.smtp_host,
                "smtp_port": self.env_config.smtp_port,
            },
        )


def normalize_recipient(address: str) -> str:
    """Validate a single recipient address and return its normalized form.

    Raises:
        ValueError: If the address is not a syntactically valid email
    """
    try:
        return validate_email(address or "", check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValueError(f"Invalid recipient address '{address}': {e}") from e


def build_sender_address(env_config: EnvironmentConfig) -> str:
    """Build the 'From' address for outgoing emails.

    Uses FROM_EMAIL, then SMTP_USER, then a noreply address at the SMTP host,
    with FROM_NAME as the display name.

    Returns:
        Formatted sender address (e.g., '"Notification System" <noreply@example.com>')
    """
    if env_config.from_email:
        sender_email = env_config.from_email
    elif env_config.smtp_user:
        sender_email = env_config.smtp_user
    else:
        sender_email = f"noreply@{env_config.smtp_host}"

    return f'"{env_config.from_name}" <{sender_email}>'
