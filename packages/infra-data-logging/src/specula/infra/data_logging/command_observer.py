"""Command factory observer.

Traces every command produced by the command factory. Formatting a command
is comparatively expensive, so the observer only attaches when the sink
reports trace records as enabled at attach time. A level enabled later does
not attach it retroactively; the next :meth:`attach` call checks again.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from specula.infra.data_logging import formatting
from specula.infra.data_logging.errors import require
from specula.infra.data_logging.observer import EventObserver, contained
from specula.infra.data_logging.runtime import DbCommandFactory
from specula.infra.data_logging.subscriptions import SubscriptionRegistry

if TYPE_CHECKING:
    from specula.infra.observability.sink import TraceSink

logger = logging.getLogger(__name__)


class DbCommandFactoryObserver(EventObserver):
    """Emits one trace record per created command.

    Args:
        sink: Destination for trace records.
        command_factory: Raises ``command_created``.

    Raises:
        ConfigurationError: If any collaborator is None.
    """

    def __init__(self, sink: TraceSink, command_factory: DbCommandFactory) -> None:
        super().__init__(sink)
        self._command_factory = require(command_factory, "command_factory")
        self._bindings = SubscriptionRegistry([("command_created", self.on_command_created)])

    def _should_attach(self) -> bool:
        try:
            enabled = self._sink.is_trace_enabled()
        except Exception:
            logger.warning("Trace level query failed; command tracing disabled", exc_info=True)
            return False
        if not enabled:
            logger.info("Trace records are disabled; not observing created commands")
        return bool(enabled)

    def _bind_sources(self) -> None:
        self._bindings.bind(self._command_factory)

    def _unbind_sources(self) -> None:
        self._bindings.unbind(self._command_factory)

    @contained
    def on_command_created(self, sender: Any, event: Any) -> None:
        self._require(sender, DbCommandFactory, "on_command_created")
        self._emit(formatting.COMMAND_CREATED, formatting.format_command_created(event))
