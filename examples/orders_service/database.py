"""Reference-counted SQLAlchemy session contexts.

Acquiring a key that is already live returns the same context with one more
reference; the session is closed when the last reference is released.
Reference counts change only under the factory lock. Transaction
notifications come from the session's own ``after_begin`` and
``after_commit`` events.

A session is not thread-safe, so a key must not be shared by concurrent
requests; the router acquires one key per request.
"""

from __future__ import annotations

import threading
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

from sqlalchemy import event
from sqlalchemy.orm import Session

from specula.infra.data_logging import (
    AmbientContextAssignedEvent,
    AmbientContextChangeEvent,
    ContextLifecycleEvent,
    EventHook,
    TransactionLifecycleEvent,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine


class SessionContext:
    """A named session shared by every holder of the same key."""

    def __init__(self, name: str, key: str, engine: Engine, owner: SessionContextFactory) -> None:
        self.name = name
        self.key = key
        self.reference_count = 1
        self.session = Session(engine)
        self._owner = owner
        self.transaction_started: EventHook[TransactionLifecycleEvent] = EventHook("transaction_started")
        self.transaction_committed: EventHook[TransactionLifecycleEvent] = EventHook(
            "transaction_committed"
        )
        self.disposed: EventHook[ContextLifecycleEvent] = EventHook("disposed")
        self.dispose_ignored: EventHook[ContextLifecycleEvent] = EventHook("dispose_ignored")

        event.listen(self.session, "after_begin", self._after_begin)
        event.listen(self.session, "after_commit", self._after_commit)

    @property
    def is_disposed(self) -> bool:
        return self.reference_count <= 0

    def release(self) -> None:
        """Drop one reference; close the session when none remain."""
        self._owner.release(self)

    def _after_begin(self, session: Session, transaction: Any, connection: Any) -> None:
        self.transaction_started.fire(self, TransactionLifecycleEvent(context=self, transaction=transaction))

    def _after_commit(self, session: Session) -> None:
        self.transaction_committed.fire(self, TransactionLifecycleEvent(context=self))

    def __repr__(self) -> str:
        return f"SessionContext({self.name!r}, key={self.key!r}, references={self.reference_count})"


class SessionContextFactory:
    """Creates session contexts and hands out references to live ones."""

    def __init__(self, engine: Engine, name: str) -> None:
        self._engine = engine
        self._name = name
        self._lock = threading.Lock()
        self._live: dict[str, SessionContext] = {}
        self.context_created: EventHook[ContextLifecycleEvent] = EventHook("context_created")
        self.context_referenced: EventHook[ContextLifecycleEvent] = EventHook("context_referenced")

    @property
    def live_count(self) -> int:
        with self._lock:
            return len(self._live)

    def acquire(self, key: str) -> SessionContext:
        with self._lock:
            context = self._live.get(key)
            created = context is None
            if created:
                context = SessionContext(self._name, key, self._engine, self)
                self._live[key] = context
            else:
                context.reference_count += 1

        if created:
            self.context_created.fire(self, ContextLifecycleEvent(context=context))
        else:
            self.context_referenced.fire(self, ContextLifecycleEvent(context=context))
        return context

    def release(self, context: SessionContext) -> None:
        """Drop one reference to ``context``; the last one closes its session.

        Raises:
            RuntimeError: If the context was already disposed.
        """
        with self._lock:
            if context.is_disposed:
                msg = f"{context!r} released after disposal"
                raise RuntimeError(msg)
            context.reference_count -= 1
            remaining = context.reference_count
            if remaining == 0 and self._live.get(context.key) is context:
                del self._live[context.key]

        if remaining > 0:
            context.dispose_ignored.fire(context, ContextLifecycleEvent(context=context))
            return
        context.session.close()
        context.disposed.fire(context, ContextLifecycleEvent(context=context))


# Ambient context for the current logical thread - None outside a unit of work
_ambient_context: ContextVar[SessionContext | None] = ContextVar("ambient_context", default=None)
# Thread that last set the ambient value in this logical thread
_ambient_owner: ContextVar[int | None] = ContextVar("ambient_owner", default=None)


class AmbientContextService:
    """Ambient context slot, scoped to the current logical thread."""

    def __init__(self, factory: SessionContextFactory) -> None:
        self._factory = factory
        self.ambient_value_changed: EventHook[AmbientContextChangeEvent] = EventHook(
            "ambient_value_changed"
        )
        self.ambient_value_assigned: EventHook[AmbientContextAssignedEvent] = EventHook(
            "ambient_value_assigned"
        )

    @property
    def current(self) -> SessionContext | None:
        return _ambient_context.get()

    def activate(self, context: SessionContext | None) -> SessionContext | None:
        """Make ``context`` current and return the one it replaced.

        ``thread_context_changed`` is reported when the logical thread moved
        to another OS thread since its previous activation.
        """
        thread_id = threading.get_ident()
        previous = _ambient_context.get()
        owner = _ambient_owner.get()
        _ambient_context.set(context)
        _ambient_owner.set(thread_id)

        self.ambient_value_changed.fire(
            self,
            AmbientContextChangeEvent(
                current_context=context,
                previous_context=previous,
                thread_context_changed=owner is not None and owner != thread_id,
                thread_id=thread_id,
            ),
        )
        self.ambient_value_assigned.fire(
            self,
            AmbientContextAssignedEvent(
                active_context=context,
                context_count=self._factory.live_count,
                thread_id=thread_id,
            ),
        )
        return previous
