"""Scheduling module for periodic execution of worker passes."""

from .service import SchedulerService

__all__ = [
    "SchedulerService",
]
