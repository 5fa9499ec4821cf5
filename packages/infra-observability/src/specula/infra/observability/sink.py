"""Trace sink: where formatted diagnostic records are delivered.

The data-access observers never talk to a logging library directly; they
emit through a :class:`TraceSink`. :class:`StructlogTraceSink` is the
production implementation on top of the structlog logger returned by
:func:`~specula.infra.observability.logging.get_logger`.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from specula.infra.observability.logging import get_logger

#: Level used for trace records. Neither structlog's filtering loggers nor
#: the standard library define a level below DEBUG.
TRACE_LEVEL: int = logging.DEBUG


@runtime_checkable
class TraceSink(Protocol):
    """Port for a leveled sink accepting trace records.

    Example:
        >>> def emit(sink: TraceSink, message: str) -> None:
        ...     if sink.is_trace_enabled():
        ...         sink.trace(message, category="database-context/created")
    """

    def is_trace_enabled(self) -> bool:
        """Cheap capability query: would a trace record be consumed right now?"""
        ...

    def trace(self, message: str, **fields: Any) -> None:
        """Emit one trace record. Fire-and-forget."""
        ...


class StructlogTraceSink:
    """TraceSink backed by a structlog (or standard library) logger.

    Records are written at ``debug`` with any extra fields passed through as
    structured key/value pairs.

    Args:
        logger: Logger to write to. Defaults to ``get_logger(name)``.
        name: Logger name used when no logger is given.
    """

    def __init__(self, logger: Any | None = None, *, name: str = "specula.data_access") -> None:
        self._logger = logger if logger is not None else get_logger(name)

    @property
    def logger(self) -> Any:
        return self._logger

    def is_trace_enabled(self) -> bool:
        is_enabled = getattr(self._logger, "is_enabled_for", None)
        if is_enabled is None:
            is_enabled = getattr(self._logger, "isEnabledFor", None)
        if is_enabled is None:
            # Loggers without a level query are assumed to consume everything.
            return True
        return bool(is_enabled(TRACE_LEVEL))

    def trace(self, message: str, **fields: Any) -> None:
        if isinstance(self._logger, logging.Logger):
            # stdlib loggers reject arbitrary keyword arguments
            self._logger.debug(message, extra=fields)
            return
        self._logger.debug(message, **fields)
