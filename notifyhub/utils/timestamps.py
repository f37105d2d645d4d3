"""Clock helpers.

The store holds naive wall-clock datetimes in the engine's configured
timezone. These helpers produce such values and format them for logs and
template variables.
"""

from datetime import datetime, tzinfo
from typing import Optional


def local_now(zone: tzinfo) -> datetime:
    """Current wall-clock time in ``zone``, without tzinfo attached.

    Example:
        >>> local_now(timezone.utc).tzinfo is None
        True
    """
    return datetime.now(zone).replace(tzinfo=None)


def format_timestamp_for_log(dt: Optional[datetime]) -> Optional[str]:
    """ISO-8601 string with second precision, or None."""
    if dt is None:
        return None
    return dt.replace(microsecond=0).isoformat()


def format_display_date(dt: datetime) -> str:
    """Human-readable date used for the ``current_date`` template variable.

    Example:
        >>> format_display_date(datetime(2025, 3, 7, 9, 5))
        'March 7, 2025'
    """
    return f"{dt.strftime('%B')} {dt.day}, {dt.year}"
