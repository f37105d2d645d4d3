"""Email layout rendering using Jinja2.

The notification body is already personalized by the engine's placeholder
renderer. This module only wraps it in the HTML and plain-text email layouts
from the notifyhub.notifications.email_templates package.
"""

from typing import Dict

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError, select_autoescape

from notifyhub.logging import get_logger

from .models import NotificationTemplateError

logger = get_logger(__name__, component="notification")


class EmailLayoutRenderer:
    """Renders the HTML and plain-text parts of a notification email.

    Templates are cached by the Jinja2 environment after first load.
    """

    def __init__(
        self,
        template_dir: str = "email_templates",
        html_template: str = "notification_body.html.j2",
        text_template: str = "notification_body.txt.j2",
    ):
        self.html_template_name = html_template
        self.text_template_name = text_template

        self.env = Environment(
            loader=PackageLoader("notifyhub.notifications", template_dir),
            autoescape=select_autoescape(enabled_extensions=("html.j2",)),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    def render(self, subject: str, body: str, recipient_name: str) -> Dict[str, str]:
        """Render both email parts.

        Args:
            subject: Personalized subject line
            body: Personalized body text
            recipient_name: Display name used in the greeting

        Returns:
            Dictionary with ``html_body`` and ``text_body``

        Raises:
            NotificationTemplateError: If template rendering fails
        """
        context = {
            "subject": subject,
            "body_lines": body.splitlines() or [""],
            "body": body,
            "recipient_name": recipient_name,
        }
        try:
            html_body = self.env.get_template(self.html_template_name).render(context)
            text_body = self.env.get_template(self.text_template_name).render(context)
        except TemplateError as e:
            error_msg = f"Template rendering failed: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e

        return {"html_body": html_body, "text_body": text_body}
