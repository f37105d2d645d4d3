"""Non-fatal configuration checks."""

import warnings
from typing import Any, Dict, List

from .duration import DurationParseError, parse_duration


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Look for settings that are valid but probably not what the operator wants.

    Args:
        config_dict: Raw configuration dictionary (before model validation)

    Returns:
        List of warning messages
    """
    messages: List[str] = []

    worker = config_dict.get("worker") or {}
    if isinstance(worker, dict):
        interval = worker.get("tick_interval")
        if isinstance(interval, str):
            try:
                seconds = parse_duration(interval)
            except DurationParseError:
                seconds = None
            if seconds is not None and seconds > 60:
                messages.append(
                    f"tick_interval ({interval}) is longer than a minute; "
                    "schedules may fire up to that long after their schedule_time"
                )

    email = config_dict.get("email") or {}
    if isinstance(email, dict) and email.get("use_tls") is False:
        messages.append("email.use_tls is false; SMTP traffic on non-465 ports will be unencrypted")

    return messages


def emit_warnings(messages: List[str]) -> None:
    for message in messages:
        warnings.warn(message, UserWarning, stacklevel=2)
