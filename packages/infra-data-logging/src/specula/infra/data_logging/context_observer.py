"""Database context observer.

Traces the lifecycle of database contexts and their transactions:

- factory level: context created, context referenced, ambient value
  changed/assigned (bound on :meth:`attach`, removed on :meth:`detach`)
- per context: transaction started/committed, disposed, dispose ignored
  (bound the first time a context is seen, removed when it is disposed)

The per-context bindings belong to the context, not to the observer's
attach window: :meth:`detach` leaves them in place and they unwind on the
context's own ``disposed`` notification.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from specula.infra.data_logging import formatting
from specula.infra.data_logging.errors import SubscriptionStateFault, require
from specula.infra.data_logging.events import (
    ContextLifecycleEvent,
    TransactionLifecycleEvent,
)
from specula.infra.data_logging.observer import EventObserver, contained
from specula.infra.data_logging.runtime import (
    DatabaseContext,
    DatabaseContextFactory,
    DatabaseContextService,
)
from specula.infra.data_logging.subscriptions import SubscriptionRegistry

if TYPE_CHECKING:
    from specula.infra.observability.sink import TraceSink

logger = logging.getLogger(__name__)


def _thread_id(event: Any) -> int:
    thread_id = getattr(event, "thread_id", None)
    return thread_id if thread_id is not None else threading.get_ident()


class DatabaseContextObserver(EventObserver):
    """Emits one trace record per context or transaction lifecycle transition.

    Args:
        sink: Destination for trace records.
        context_factory: Raises ``context_created`` / ``context_referenced``.
        context_service: Raises ``ambient_value_changed`` / ``ambient_value_assigned``.

    Raises:
        ConfigurationError: If any collaborator is None.
    """

    def __init__(
        self,
        sink: TraceSink,
        context_factory: DatabaseContextFactory,
        context_service: DatabaseContextService,
    ) -> None:
        super().__init__(sink)
        self._context_factory = require(context_factory, "context_factory")
        self._context_service = require(context_service, "context_service")

        self._factory_bindings = SubscriptionRegistry(
            [
                ("context_created", self.on_context_created),
                ("context_referenced", self.on_context_referenced),
            ]
        )
        self._service_bindings = SubscriptionRegistry(
            [
                ("ambient_value_changed", self.on_ambient_value_changed),
                ("ambient_value_assigned", self.on_ambient_value_assigned),
            ]
        )
        # Disposal is terminal: a context is never bound again once unbound.
        self._context_bindings = SubscriptionRegistry(
            [
                ("transaction_started", self.on_transaction_started),
                ("transaction_committed", self.on_transaction_committed),
                ("disposed", self.on_disposed),
                ("dispose_ignored", self.on_dispose_ignored),
            ],
            retire_on_unbind=True,
        )

    @property
    def bound_context_count(self) -> int:
        """Number of contexts currently carrying per-context bindings."""
        return len(self._context_bindings)

    def is_bound(self, context: Any) -> bool:
        return self._context_bindings.is_bound(context)

    def _bind_sources(self) -> None:
        self._factory_bindings.bind(self._context_factory)
        try:
            self._service_bindings.bind(self._context_service)
        except Exception:
            self._factory_bindings.unbind(self._context_factory)
            raise

    def _unbind_sources(self) -> None:
        try:
            self._factory_bindings.unbind(self._context_factory)
        finally:
            self._service_bindings.unbind(self._context_service)

    # -- factory level -----------------------------------------------------

    @contained
    def on_context_created(self, sender: Any, event: Any) -> None:
        self._require(sender, DatabaseContextFactory, "on_context_created")
        self._emit(formatting.CONTEXT_CREATED, formatting.format_context_created(event))
        self._bind_context(getattr(event, "context", None), "on_context_created")

    @contained
    def on_context_referenced(self, sender: Any, event: Any) -> None:
        self._require(sender, DatabaseContextFactory, "on_context_referenced")
        self._emit(formatting.CONTEXT_REFERENCED, formatting.format_context_referenced(event))
        self._bind_context(getattr(event, "context", None), "on_context_referenced")

    @contained
    def on_ambient_value_changed(self, sender: Any, event: Any) -> None:
        self._require(sender, DatabaseContextService, "on_ambient_value_changed")
        self._emit(formatting.AMBIENT_VALUE_CHANGED, formatting.format_ambient_change(event))

    @contained
    def on_ambient_value_assigned(self, sender: Any, event: Any) -> None:
        self._require(sender, DatabaseContextService, "on_ambient_value_assigned")
        self._emit(formatting.AMBIENT_VALUE_ASSIGNED, formatting.format_ambient_assigned(event))

    def _bind_context(self, context: Any, handler: str) -> None:
        if not isinstance(context, DatabaseContext):
            raise SubscriptionStateFault(handler, context)
        if self._context_bindings.bind(context):
            logger.debug("Bound lifecycle handlers to context %r", getattr(context, "key", None))

    # -- per context -------------------------------------------------------

    @contained
    def on_transaction_started(self, sender: Any, event: Any) -> None:
        context = self._require(sender, DatabaseContext, "on_transaction_started")
        record = TransactionLifecycleEvent(
            context=context,
            transaction=getattr(event, "transaction", None),
            thread_id=_thread_id(event),
        )
        self._emit(formatting.TRANSACTION_STARTED, formatting.format_transaction_started(record))

    @contained
    def on_transaction_committed(self, sender: Any, event: Any) -> None:
        context = self._require(sender, DatabaseContext, "on_transaction_committed")
        record = TransactionLifecycleEvent(
            context=context,
            transaction=getattr(event, "transaction", None),
            thread_id=_thread_id(event),
        )
        self._emit(
            formatting.TRANSACTION_COMMITTED, formatting.format_transaction_committed(record)
        )

    @contained
    def on_disposed(self, sender: Any, event: Any) -> None:
        context = self._require(sender, DatabaseContext, "on_disposed")
        record = ContextLifecycleEvent(context=context, thread_id=_thread_id(event))
        try:
            self._emit(formatting.CONTEXT_DISPOSED, formatting.format_context_disposed(record))
        finally:
            if self._context_bindings.unbind(context):
                logger.debug("Unbound lifecycle handlers from context %r", getattr(context, "key", None))

    @contained
    def on_dispose_ignored(self, sender: Any, event: Any) -> None:
        context = self._require(sender, DatabaseContext, "on_dispose_ignored")
        record = ContextLifecycleEvent(context=context, thread_id=_thread_id(event))
        self._emit(formatting.CONTEXT_DISPOSE_IGNORED, formatting.format_dispose_ignored(record))
