"""Persistence layer for the notification store.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repository classes
    - ScheduleRepository: due selection, recipients, execution bookkeeping
    - NotificationRepository: notification rows and status transitions
    - DeliveryLogRepository: append-only delivery attempts
    - ChannelRepository: channel registry lookups

Example usage:
    >>> from notifyhub.persistence import init_database, get_session, ScheduleRepository
    >>>
    >>> init_database("sqlite:///./data/notifyhub.db")
    >>>
    >>> with get_session() as session:
    ...     recipients = ScheduleRepository(session).get_active_recipients(42)
"""

# Database initialization and session management
from .database import close_database, get_engine, get_session, init_database

# Repository classes
from .repositories import (
    ChannelRepository,
    DeliveryLogRepository,
    NotificationRepository,
    ScheduleRepository,
)

# Exceptions
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    InvalidStatusTransitionError,
    PersistenceError,
    RecordNotFoundError,
)

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    # Repositories
    "ScheduleRepository",
    "NotificationRepository",
    "DeliveryLogRepository",
    "ChannelRepository",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
    "InvalidStatusTransitionError",
]
