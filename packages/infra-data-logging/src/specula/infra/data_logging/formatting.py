"""Trace formatting: lifecycle event payloads to diagnostic text.

Every function here is pure and never raises. Absent values render as a
placeholder; a value that cannot be rendered turns the whole record into a
single fallback line naming the category and the exception type.

Example:
    >>> format_command_created(
    ...     CommandCreatedEvent(
    ...         command=DbCommand("SELECT 1", parameters=[CommandParameter("@id", 42)]),
    ...         thread_id=7,
    ...     )
    ... ).splitlines()[-1]
    '@id = 42'
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from functools import wraps
from typing import TYPE_CHECKING, Any

from specula.infra.data_logging.errors import FormattingFault

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

CONTEXT_CREATED = "database-context/created"
CONTEXT_REFERENCED = "database-context/referenced"
CONTEXT_DISPOSED = "database-context/disposed"
CONTEXT_DISPOSE_IGNORED = "database-context/dispose-ignored"
TRANSACTION_STARTED = "database-context/transaction-started"
TRANSACTION_COMMITTED = "database-context/transaction-committed"
AMBIENT_VALUE_CHANGED = "database-context/ambient-value-changed"
AMBIENT_VALUE_ASSIGNED = "database-context/ambient-value-assigned"
COMMAND_CREATED = "db-command/created"

#: Rendered for the name/key of a context that is absent altogether.
NO_ACTIVE_CONTEXT = "(no active database context)"
#: Rendered for an individual field that is absent.
MISSING_VALUE = "(none)"
#: Rendered for a parameter whose value is None.
NULL_VALUE = "NULL"

COMMAND_TEXT_DELIMITER = "---"


def fallback_line(category: str, cause: BaseException) -> str:
    """Degraded record emitted in place of one that could not be formatted."""
    return f"[{category}] : (trace record could not be formatted: {type(cause).__name__})"


def _never_raises(category: str) -> Callable[[Callable[[Any], str]], Callable[[Any], str]]:
    def decorator(func: Callable[[Any], str]) -> Callable[[Any], str]:
        @wraps(func)
        def wrapper(event: Any) -> str:
            try:
                return func(event)
            except FormattingFault as fault:
                return fallback_line(category, fault.cause)
            except Exception as exc:
                return fallback_line(category, exc)

        return wrapper

    return decorator


def _render(value: Any, placeholder: str = MISSING_VALUE) -> str:
    if value is None:
        return placeholder
    if isinstance(value, Enum):
        value = value.value
    try:
        return str(value)
    except Exception as exc:
        raise FormattingFault("value", exc) from exc


def _identity(context: Any, prefix: str = "") -> str:
    if context is None:
        name = key = NO_ACTIVE_CONTEXT
    else:
        name = _render(getattr(context, "name", None))
        key = _render(getattr(context, "key", None))
    return f"{prefix}name = '{name}' / {prefix}key = '{key}'"


def _context_line(category: str, event: Any, *, with_reference_count: bool = True) -> str:
    context = getattr(event, "context", None)
    parts = [_identity(context)]
    if with_reference_count:
        count = getattr(context, "reference_count", None) if context is not None else None
        parts.append(f"reference count = {_render(count)}")
    parts.append(f"thread id = {_render(getattr(event, 'thread_id', None))}")
    return f"[{category}] : " + " / ".join(parts)


@_never_raises(CONTEXT_CREATED)
def format_context_created(event: Any) -> str:
    """``[database-context/created] : name = '...' / key = '...' / reference count = N / thread id = T``"""
    return _context_line(CONTEXT_CREATED, event)


@_never_raises(CONTEXT_REFERENCED)
def format_context_referenced(event: Any) -> str:
    """Same shape as a created record; the reference count shows the new holder."""
    return _context_line(CONTEXT_REFERENCED, event)


@_never_raises(CONTEXT_DISPOSED)
def format_context_disposed(event: Any) -> str:
    return _context_line(CONTEXT_DISPOSED, event, with_reference_count=False)


@_never_raises(CONTEXT_DISPOSE_IGNORED)
def format_dispose_ignored(event: Any) -> str:
    """Dispose was suppressed because the context is still referenced."""
    return _context_line(CONTEXT_DISPOSE_IGNORED, event)


@_never_raises(TRANSACTION_STARTED)
def format_transaction_started(event: Any) -> str:
    return _context_line(TRANSACTION_STARTED, event)


@_never_raises(TRANSACTION_COMMITTED)
def format_transaction_committed(event: Any) -> str:
    return _context_line(TRANSACTION_COMMITTED, event)


@_never_raises(AMBIENT_VALUE_CHANGED)
def format_ambient_change(event: Any) -> str:
    """Before/after ambient context and whether a logical-thread boundary was crossed."""
    current = _identity(getattr(event, "current_context", None), prefix="current ")
    previous = _identity(getattr(event, "previous_context", None), prefix="previous ")
    thread_id = _render(getattr(event, "thread_id", None))
    changed = _render(getattr(event, "thread_context_changed", None))
    return (
        f"[{AMBIENT_VALUE_CHANGED}] : {current} / {previous} / "
        f"thread id = {thread_id} / thread context changed = {changed}"
    )


@_never_raises(AMBIENT_VALUE_ASSIGNED)
def format_ambient_assigned(event: Any) -> str:
    active = getattr(event, "active_context", None)
    name = NO_ACTIVE_CONTEXT if active is None else _render(getattr(active, "name", None))
    count = _render(getattr(event, "context_count", None))
    thread_id = _render(getattr(event, "thread_id", None))
    return (
        f"[{AMBIENT_VALUE_ASSIGNED}] : active name = '{name}' / "
        f"database context count = {count} / thread id = {thread_id}"
    )


def _parameter_pairs(parameters: Any) -> list[tuple[Any, Any]]:
    if parameters is None:
        return []
    if isinstance(parameters, Mapping):
        return list(parameters.items())

    pairs: list[tuple[Any, Any]] = []
    for parameter in parameters:
        if hasattr(parameter, "name") and hasattr(parameter, "value"):
            pairs.append((parameter.name, parameter.value))
        elif isinstance(parameter, tuple) and len(parameter) == 2:
            pairs.append((parameter[0], parameter[1]))
        else:
            pairs.append((None, parameter))
    return pairs


def _command_lines(command: Any) -> Iterable[str]:
    yield f"[{COMMAND_CREATED}] :-"
    yield f"\tcommand type = '{_render(getattr(command, 'command_type', None))}'"
    yield "\tcommand text:"
    yield COMMAND_TEXT_DELIMITER
    yield _render(getattr(command, "command_text", None))
    yield COMMAND_TEXT_DELIMITER

    pairs = _parameter_pairs(getattr(command, "parameters", None))
    if pairs:
        yield ""
        yield "\tparameters:"
        for name, value in pairs:
            yield f"{_render(name)} = {_render(value, NULL_VALUE)}"


@_never_raises(COMMAND_CREATED)
def format_command_created(event: Any) -> str:
    """Multi-line record of a created command.

    The command text is enclosed between ``---`` lines and never truncated.
    The parameters section is present only when the command has parameters,
    with one ``name = value`` line each, in declaration order.
    """
    return "\n".join(_command_lines(getattr(event, "command", None)))
