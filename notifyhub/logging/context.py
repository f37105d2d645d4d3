"""Scoped logging context backed by contextvars.

Fields pushed here (pass_id, schedule_id, notification_id, ...) are copied onto
every log record emitted inside the scope by ``ContextualFilter``. Each thread
started by the scheduler gets its own context, so concurrent passes never see
each other's fields.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator

_LOG_CONTEXT: ContextVar[Dict[str, Any]] = ContextVar("notifyhub_log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the fields active in the current scope."""
    return dict(_LOG_CONTEXT.get())


def clear_log_context() -> None:
    """Drop every active field. Intended for tests."""
    _LOG_CONTEXT.set({})


@contextmanager
def log_context(**fields: Any) -> Iterator[Dict[str, Any]]:
    """Add ``fields`` to the logging context for the duration of the block.

    Nested scopes inherit the outer fields; inner values shadow outer ones
    with the same key. The previous context is restored on exit, including
    when the block raises.

    Example:
        >>> with log_context(pass_id="a1b2"):
        ...     with log_context(schedule_id=7):
        ...         logger.info("Dispatching")  # carries pass_id and schedule_id
    """
    token = _LOG_CONTEXT.set({**_LOG_CONTEXT.get(), **fields})
    try:
        yield get_log_context()
    finally:
        _LOG_CONTEXT.reset(token)
