"""Persistence layer exceptions.

Everything raised by the persistence layer derives from PersistenceError, so
the executor can treat any store failure as a schedule-level fault.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""


class DatabaseConnectionError(PersistenceError):
    """Raised when the engine cannot be created or the store is unreachable."""


class RecordNotFoundError(PersistenceError):
    """Raised when an operation targets a row that does not exist.

    Optional lookups return None instead.
    """


class DataIntegrityError(PersistenceError):
    """Raised on constraint violations (unique, foreign key, check)."""


class InvalidStatusTransitionError(PersistenceError):
    """Raised when a notification status change is not an allowed transition.

    Allowed: pending -> sent, pending -> failed, sent -> read.
    """
