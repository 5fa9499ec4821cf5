"""Event payloads raised by the data-access runtime.

Payloads are immutable and only valid for the duration of the handler call.
Each records the identifier of the thread that raised it. Context fields are
read through the referenced context, so any of them may be absent.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, NamedTuple

if TYPE_CHECKING:
    from collections.abc import Sequence

    from specula.infra.data_logging.runtime import DatabaseContext


class CommandType(StrEnum):
    """How a command's text is interpreted by the database."""

    TEXT = "Text"
    STORED_PROCEDURE = "StoredProcedure"
    TABLE_DIRECT = "TableDirect"


class CommandParameter(NamedTuple):
    """A named command parameter."""

    name: str | None
    value: Any


@dataclass(frozen=True, slots=True)
class DbCommand:
    """An executable command as produced by a command factory.

    Attributes:
        command_text: SQL text (or procedure/table name).
        command_type: Interpretation of ``command_text``.
        parameters: Parameters in declaration order. May be empty or None.
    """

    command_text: str | None
    command_type: CommandType | str | None = CommandType.TEXT
    parameters: Sequence[CommandParameter] | None = None


class _ContextIdentity:
    """Read-through accessors for events that reference a context."""

    __slots__ = ()

    context: DatabaseContext | None

    @property
    def name(self) -> str | None:
        return getattr(self.context, "name", None)

    @property
    def key(self) -> Any:
        return getattr(self.context, "key", None)

    @property
    def reference_count(self) -> int | None:
        return getattr(self.context, "reference_count", None)


@dataclass(frozen=True, slots=True)
class ContextLifecycleEvent(_ContextIdentity):
    """A context was created, referenced, disposed, or its dispose was ignored."""

    context: DatabaseContext | None
    thread_id: int | None = field(default_factory=threading.get_ident)


@dataclass(frozen=True, slots=True)
class TransactionLifecycleEvent(_ContextIdentity):
    """A transaction started or committed on ``context``."""

    context: DatabaseContext | None
    transaction: Any = None
    thread_id: int | None = field(default_factory=threading.get_ident)


@dataclass(frozen=True, slots=True)
class AmbientContextChangeEvent:
    """The ambient context of a logical thread changed.

    Attributes:
        current_context: Active context after the change, if any.
        previous_context: Active context before the change, if any.
        thread_context_changed: True when the change happened because
            execution moved across a logical-thread boundary.
    """

    current_context: DatabaseContext | None
    previous_context: DatabaseContext | None = None
    thread_context_changed: bool = False
    thread_id: int | None = field(default_factory=threading.get_ident)


@dataclass(frozen=True, slots=True)
class AmbientContextAssignedEvent:
    """The ambient context slot was explicitly assigned.

    Attributes:
        active_context: Context made active, if any.
        context_count: Number of contexts tracked in the ambient slot.
    """

    active_context: DatabaseContext | None
    context_count: int | None = None
    thread_id: int | None = field(default_factory=threading.get_ident)


@dataclass(frozen=True, slots=True)
class CommandCreatedEvent:
    """A command factory produced ``command``."""

    command: DbCommand | Any
    thread_id: int | None = field(default_factory=threading.get_ident)
