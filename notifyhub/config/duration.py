"""Parsing of tick-interval strings such as ``1m``, ``90s`` or ``PT1M``."""

import re

_HUMAN = re.compile(r"^(\d+)\s*([smhd])$", re.IGNORECASE)
_ISO = re.compile(r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?)?$", re.IGNORECASE)
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


class DurationParseError(ValueError):
    """Raised when a duration string cannot be parsed."""


def parse_duration(value: str) -> int:
    """Convert a duration string to whole seconds.

    Accepts a single-unit human form (``30s``, ``1m``, ``2h``, ``1d``) or an
    ISO-8601 duration (``PT1M``, ``PT1H30M``, ``P1D``).

    Raises:
        DurationParseError: If the string matches neither form or is zero
    """
    text = (value or "").strip()
    if not text:
        raise DurationParseError("Duration string cannot be empty")

    human = _HUMAN.match(text)
    if human:
        seconds = int(human.group(1)) * _UNIT_SECONDS[human.group(2).lower()]
    else:
        iso = _ISO.match(text)
        if not iso or text.upper() in ("P", "PT") or text.upper().endswith("T"):
            raise DurationParseError(
                f"Invalid duration '{value}'. Use e.g. '30s', '1m', '2h' or 'PT1M'"
            )
        days, hours, minutes, secs = (int(part or 0) for part in iso.groups())
        seconds = days * 86400 + hours * 3600 + minutes * 60 + secs

    if seconds <= 0:
        raise DurationParseError(f"Duration must be positive, got '{value}'")
    return seconds


def validate_duration_range(seconds: int, min_seconds: int, max_seconds: int) -> None:
    """Raise DurationParseError unless ``min_seconds <= seconds <= max_seconds``."""
    if not min_seconds <= seconds <= max_seconds:
        raise DurationParseError(
            f"Duration {seconds}s is outside the allowed range "
            f"{min_seconds}s to {max_seconds}s"
        )
