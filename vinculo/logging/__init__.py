"""Structured logging for the matching core.

Every module logs through ``get_logger(__name__, component=...)`` so records carry
a ``component`` field, and mutating operations attach an ``event`` name in
``extra`` (for example ``match.created`` or ``keywords.linked``).
"""

import logging
from typing import Optional, Union

from .context import log_context

SERVICE_NAME = "vinculo"


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges its component field with per-call extra."""

    def process(self, msg, kwargs):
        """Merge adapter extra into the call's extra (call values win)."""
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(
    name: str, component: Optional[str] = None
) -> Union[logging.Logger, ComponentLoggerAdapter]:
    """Get a logger, optionally tagging every record with a component.

    Args:
        name: Logger name (typically __name__)
        component: Component identifier injected into all records

    Returns:
        Logger or ComponentLoggerAdapter instance

    Example:
        >>> logger = get_logger(__name__, component="lifecycle")
        >>> logger.info("Match created", extra={"event": "match.created", "match_id": 7})
    """
    logger = logging.getLogger(name)

    if component:
        return ComponentLoggerAdapter(logger, {"component": component})

    return logger


__all__ = ["SERVICE_NAME", "ComponentLoggerAdapter", "get_logger", "log_context"]
