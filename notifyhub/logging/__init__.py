"""Structured logging helpers shared by every notifyhub component."""

import logging
from typing import Optional, Union


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that stamps a fixed set of fields onto every record.

    Fields given to an individual log call through ``extra`` win over the
    adapter's own fields.
    """

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

    def bind(self, **fields) -> "ComponentLoggerAdapter":
        """Return a new adapter carrying this adapter's fields plus ``fields``."""
        return ComponentLoggerAdapter(self.logger, {**self.extra, **fields})


def get_logger(
    name: str, component: Optional[str] = None
) -> Union[logging.Logger, ComponentLoggerAdapter]:
    """Get a logger, optionally tagged with a ``component`` field.

    Args:
        name: Logger name (usually ``__name__``)
        component: Component label added to every record (e.g. "worker")

    Returns:
        A plain Logger, or a ComponentLoggerAdapter when component is given

    Example:
        >>> logger = get_logger(__name__, component="executor")
        >>> logger.info("Schedule executed", extra={"event": "schedule.executed"})
    """
    logger = logging.getLogger(name)
    if component:
        return ComponentLoggerAdapter(logger, {"component": component})
    return logger


__all__ = ["ComponentLoggerAdapter", "get_logger"]
