"""Shared machinery for factory-level observers.

An observer attaches to one or more runtime sources, emits trace records
through a :class:`~specula.infra.observability.TraceSink`, and detaches again.
Attach and detach are idempotent and run under a lock, so concurrent or
repeated start/stop calls cannot produce duplicate or dangling bindings.

Handlers are wrapped with :func:`contained`: nothing they raise ever reaches
the runtime that fired the event.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from functools import wraps
from typing import TYPE_CHECKING, Any, TypeVar

from specula.infra.data_logging.errors import SubscriptionStateFault, require

if TYPE_CHECKING:
    from collections.abc import Callable

    from specula.infra.observability.sink import TraceSink

logger = logging.getLogger(__name__)

ObserverT = TypeVar("ObserverT", bound="EventObserver")


def contained(
    handler: Callable[[ObserverT, Any, Any], None],
) -> Callable[[ObserverT, Any, Any], None]:
    """Run an event handler so that no exception escapes into the event source.

    An event from an unexpected sender (:class:`SubscriptionStateFault`) is
    dropped silently; any other failure skips the trace record and is logged
    as a warning.
    """

    @wraps(handler)
    def wrapper(self: ObserverT, sender: Any, event: Any) -> None:
        try:
            handler(self, sender, event)
        except SubscriptionStateFault as fault:
            logger.debug("%s", fault)
        except Exception:
            logger.warning(
                "Trace record skipped: %s.%s failed",
                type(self).__name__,
                handler.__name__,
                exc_info=True,
            )

    return wrapper


class EventObserver(ABC):
    """Base class for observers with an attach/detach lifecycle.

    Subclasses implement :meth:`_bind_sources` and :meth:`_unbind_sources`,
    and may veto attachment in :meth:`_should_attach`.

    Args:
        sink: Destination for trace records.

    Raises:
        ConfigurationError: If ``sink`` is None.
    """

    def __init__(self, sink: TraceSink) -> None:
        self._sink = require(sink, "sink")
        self._lock = threading.Lock()
        self._attached = False

    @property
    def is_attached(self) -> bool:
        return self._attached

    def attach(self) -> bool:
        """Subscribe to the factory-level sources.

        Returns:
            True if this call attached, False if already attached or vetoed.
        """
        with self._lock:
            if self._attached:
                logger.debug("%s already attached", type(self).__name__)
                return False
            if not self._should_attach():
                return False
            self._bind_sources()
            self._attached = True
        logger.info("%s attached", type(self).__name__)
        return True

    def detach(self) -> bool:
        """Unsubscribe from the factory-level sources.

        Returns:
            True if this call detached, False if there was nothing to detach.
        """
        with self._lock:
            if not self._attached:
                return False
            self._attached = False
            self._unbind_sources()
        logger.info("%s detached", type(self).__name__)
        return True

    def _should_attach(self) -> bool:
        return True

    @abstractmethod
    def _bind_sources(self) -> None:
        """Subscribe to the factory-level sources. Called under the attach lock."""

    @abstractmethod
    def _unbind_sources(self) -> None:
        """Undo :meth:`_bind_sources`. Called under the attach lock."""

    def _emit(self, category: str, message: str) -> None:
        """Hand one record to the sink. A failing sink only loses the record."""
        try:
            self._sink.trace(message, category=category)
        except Exception:
            logger.warning("Trace record skipped: sink rejected %s", category, exc_info=True)

    @staticmethod
    def _require(sender: Any, expected: type, handler: str) -> Any:
        if not isinstance(sender, expected):
            raise SubscriptionStateFault(handler, sender)
        return sender
