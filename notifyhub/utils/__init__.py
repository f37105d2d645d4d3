"""Utility functions for time handling."""

from .timestamps import format_display_date, format_timestamp_for_log, local_now

__all__ = [
    "local_now",
    "format_timestamp_for_log",
    "format_display_date",
]
