"""Test helper utilities for notifyhub tests."""

from .channels import FakeChannel
from .seed import (
    seed_daily_scenario,
    seed_department,
    seed_schedule,
    seed_template,
    seed_user,
)

__all__ = [
    "FakeChannel",
    "seed_daily_scenario",
    "seed_department",
    "seed_schedule",
    "seed_template",
    "seed_user",
]
