"""Ports describing the observed data-access runtime.

The runtime itself (pooling, transactions, SQL execution) is external. These
protocols name only what the observers touch: notification hooks with
``add``/``remove`` and the read-only identity of a database context.
:class:`~specula.infra.data_logging.subscriptions.EventHook` satisfies
:class:`NotificationHook`.

All protocols are runtime_checkable so handlers can verify an event's sender
before acting on it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable


@runtime_checkable
class NotificationHook(Protocol):
    """A subscribable event: ``handler(sender, event)`` is called on each firing."""

    def add(self, handler: Callable[[Any, Any], None]) -> Any: ...

    def remove(self, handler: Callable[[Any, Any], None]) -> Any: ...


@runtime_checkable
class DatabaseContext(Protocol):
    """A unit of database connectivity and transactional scope.

    ``reference_count`` is the number of active holders of a shared context;
    ``dispose_ignored`` fires instead of ``disposed`` while it is above zero.
    """

    @property
    def name(self) -> str | None: ...

    @property
    def key(self) -> Any: ...

    @property
    def reference_count(self) -> int | None: ...

    @property
    def transaction_started(self) -> NotificationHook: ...

    @property
    def transaction_committed(self) -> NotificationHook: ...

    @property
    def disposed(self) -> NotificationHook: ...

    @property
    def dispose_ignored(self) -> NotificationHook: ...


@runtime_checkable
class DatabaseContextFactory(Protocol):
    """Creates contexts, or hands out another reference to a shared one."""

    @property
    def context_created(self) -> NotificationHook: ...

    @property
    def context_referenced(self) -> NotificationHook: ...


@runtime_checkable
class DatabaseContextService(Protocol):
    """Owns the ambient context flowing through the current logical thread."""

    @property
    def ambient_value_changed(self) -> NotificationHook: ...

    @property
    def ambient_value_assigned(self) -> NotificationHook: ...


@runtime_checkable
class DbCommandFactory(Protocol):
    """Produces executable commands."""

    @property
    def command_created(self) -> NotificationHook: ...


@dataclass(frozen=True, slots=True)
class DataAccessRuntime:
    """The runtime collaborators a controller observes.

    A collaborator may be left as ``None`` only when the observation domain
    that needs it is disabled.

    Attributes:
        context_factory: Source of context created/referenced events.
        context_service: Source of ambient context change events.
        command_factory: Source of command created events.
    """

    context_factory: DatabaseContextFactory | None = None
    context_service: DatabaseContextService | None = None
    command_factory: DbCommandFactory | None = None
