"""Placeholder substitution for notification subjects and bodies.

Placeholders look like ``{{ first_name }}``. Substitution is a single pass,
so a value that itself contains ``{{...}}`` is not expanded again, and a
placeholder with no matching variable is left in the text untouched.
"""

import json
import re
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from notifyhub.domain.models import Recipient, ScheduleExecutionContext
from notifyhub.logging import get_logger
from notifyhub.utils.timestamps import format_display_date

logger = get_logger(__name__, component="renderer")

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z0-9_]+)\s*\}\}")


def render(text: str, variables: Mapping[str, str]) -> str:
    """Replace known placeholders in ``text``.

    Example:
        >>> render("Hello {{first_name}}", {"first_name": "Sam"})
        'Hello Sam'
        >>> render("Hi {{missing}}", {})
        'Hi {{missing}}'
    """
    if not text:
        return text or ""

    def substitute(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name in variables:
            return str(variables[name])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(substitute, text)


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def parse_schedule_variables(raw: Optional[str]) -> Dict[str, str]:
    """Decode a schedule's stored variable payload.

    The payload must be a JSON object. Anything else (empty, invalid JSON,
    an array, a scalar) yields an empty mapping and a warning; it never raises.
    """
    if raw is None or not str(raw).strip():
        return {}

    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning(
            f"Malformed template variables, using none: {e}",
            extra={"event": "renderer.variables.malformed", "error": str(e)},
        )
        return {}

    if not isinstance(decoded, dict):
        logger.warning(
            "Template variables are not a JSON object, using none",
            extra={
                "event": "renderer.variables.malformed",
                "payload_type": type(decoded).__name__,
            },
        )
        return {}

    return {str(key): _stringify(value) for key, value in decoded.items()}


def build_recipient_variables(
    context: ScheduleExecutionContext,
    recipient: Recipient,
    schedule_vars: Mapping[str, str],
    now: datetime,
) -> Dict[str, str]:
    """Merge schedule-level variables with identity and context fields.

    Identity and context fields are applied last so authored schedule data can
    never replace a recipient's name or address.
    """
    merged: Dict[str, str] = dict(schedule_vars)
    merged.update(
        {
            "first_name": recipient.first_name,
            "last_name": recipient.last_name,
            "full_name": recipient.display_name,
            "email": recipient.email,
            "phone_number": recipient.phone_number or "",
            "department_name": context.department_name,
            "sub_department_name": context.sub_department_name or "",
            "template_name": context.template_name,
            "schedule_id": str(context.schedule_id),
            "current_date": format_display_date(now),
        }
    )
    return merged
