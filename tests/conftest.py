"""Shared pytest fixtures."""

import pytest

from notifyhub.logging.context import clear_log_context
from notifyhub.persistence.database import close_database, init_database


@pytest.fixture
def database(tmp_path):
    """A fresh file-backed SQLite store for one test."""
    init_database(f"sqlite:///{tmp_path / 'notifyhub.db'}")
    yield
    close_database()


@pytest.fixture(autouse=True)
def clean_log_context():
    clear_log_context()
    yield
    clear_log_context()
