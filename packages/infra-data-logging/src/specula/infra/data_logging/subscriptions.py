"""Subscription primitives: event hooks and a per-source binding registry.

:class:`EventHook` is an in-process list of handlers for one event of one
source. Adding a handler twice or removing one that was never added is a
no-op, so a (source, handler) pair is bound at most once.

:class:`SubscriptionRegistry` records which sources an observer has bound a
fixed set of handlers to. It holds sources weakly, binds each one at most
once, and can retire a source after unbinding so a stray late event cannot
bind it again.

Example::

    hook: EventHook[TransactionLifecycleEvent] = EventHook("transaction_started")
    hook.add(on_started)
    hook.fire(context, TransactionLifecycleEvent(context=context))
    hook.remove(on_started)
"""

from __future__ import annotations

import logging
import threading
import weakref
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

logger = logging.getLogger(__name__)

E = TypeVar("E")


class EventHook(Generic[E]):
    """Handlers subscribed to one named event.

    Firing iterates over a snapshot, so handlers may add or remove
    subscriptions (including their own) while the event is being delivered.
    The internal lock is never held while a handler runs.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._handlers: list[Callable[[Any, E], None]] = []
        self._lock = threading.Lock()

    def add(self, handler: Callable[[Any, E], None]) -> bool:
        """Subscribe ``handler``. Returns False if it was already subscribed."""
        with self._lock:
            if handler in self._handlers:
                return False
            self._handlers.append(handler)
            return True

    def remove(self, handler: Callable[[Any, E], None]) -> bool:
        """Unsubscribe ``handler``. Returns False if it was not subscribed."""
        with self._lock:
            try:
                self._handlers.remove(handler)
            except ValueError:
                return False
            return True

    def fire(self, sender: Any, event: E) -> None:
        """Deliver ``event`` to every handler subscribed at call time, in order."""
        with self._lock:
            handlers = tuple(self._handlers)
        for handler in handlers:
            handler(sender, event)

    def __contains__(self, handler: object) -> bool:
        with self._lock:
            return handler in self._handlers

    def __len__(self) -> int:
        with self._lock:
            return len(self._handlers)

    def __repr__(self) -> str:
        return f"EventHook({self.name!r}, handlers={len(self)})"


class SubscriptionRegistry:
    """Tracks which sources currently carry a fixed set of handler bindings.

    Args:
        bindings: ``(hook attribute name, handler)`` pairs bound on every source.
        retire_on_unbind: When True, a source that has been unbound (or whose
            unbind arrived before its bind) is never bound again.
    """

    def __init__(
        self,
        bindings: Sequence[tuple[str, Callable[[Any, Any], None]]],
        *,
        retire_on_unbind: bool = False,
    ) -> None:
        self._bindings = tuple(bindings)
        self._retire_on_unbind = retire_on_unbind
        # RLock: weakref callbacks may run during garbage collection on a
        # thread that already holds the lock.
        self._lock = threading.RLock()
        self._bound: dict[int, Callable[[], Any]] = {}
        self._retired: dict[int, Callable[[], Any]] = {}

    def bind(self, source: Any) -> bool:
        """Add every handler to ``source``'s hooks, once.

        Returns:
            True if the bindings were created by this call, False if the source
            was already bound or has been retired.
        """
        key = id(source)
        with self._lock:
            if self._holds(self._bound, key, source) or self._holds(self._retired, key, source):
                return False

            added: list[tuple[str, Callable[[Any, Any], None]]] = []
            try:
                for hook_name, handler in self._bindings:
                    getattr(source, hook_name).add(handler)
                    added.append((hook_name, handler))
            except Exception:
                for hook_name, handler in reversed(added):
                    getattr(source, hook_name).remove(handler)
                raise

            self._bound[key] = self._reference(self._bound, key, source, strong=True)
            return True

    def unbind(self, source: Any) -> bool:
        """Remove every handler from ``source``'s hooks.

        Returns:
            True if the source was bound, False if there was nothing to remove.
        """
        key = id(source)
        with self._lock:
            was_bound = self._holds(self._bound, key, source)
            if was_bound:
                del self._bound[key]
            if self._retire_on_unbind:
                reference = self._reference(self._retired, key, source, strong=False)
                if reference is not None:
                    self._retired[key] = reference
            if not was_bound:
                return False

            first_error: Exception | None = None
            for hook_name, handler in self._bindings:
                try:
                    getattr(source, hook_name).remove(handler)
                except Exception as exc:
                    if first_error is None:
                        first_error = exc
            if first_error is not None:
                raise first_error
            return True

    def is_bound(self, source: Any) -> bool:
        with self._lock:
            return self._holds(self._bound, id(source), source)

    def is_retired(self, source: Any) -> bool:
        with self._lock:
            return self._holds(self._retired, id(source), source)

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for ref in self._bound.values() if ref() is not None)

    @staticmethod
    def _holds(table: dict[int, Callable[[], Any]], key: int, source: Any) -> bool:
        reference = table.get(key)
        return reference is not None and reference() is source

    def _reference(
        self,
        table: dict[int, Callable[[], Any]],
        key: int,
        source: Any,
        *,
        strong: bool,
    ) -> Callable[[], Any] | None:
        """Weak reference to ``source`` that removes itself from ``table`` on collection.

        Sources that do not support weak references are held strongly when
        ``strong`` is set (until unbound), and not held at all otherwise.
        """

        def _forget(reference: Any) -> None:
            with self._lock:
                if table.get(key) is reference:
                    del table[key]

        try:
            return weakref.ref(source, _forget)
        except TypeError:
            if not strong:
                return None
            logger.debug("Holding %s strongly: type does not support weak references", type(source).__name__)
            return lambda: source
