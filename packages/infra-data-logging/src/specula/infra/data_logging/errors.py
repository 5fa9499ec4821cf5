"""Error hierarchy for data-access logging.

Only :class:`ConfigurationError` ever reaches a caller. The other two are
raised and contained inside the library: a diagnostic fault must never
surface in the data-access call that triggered the event.
"""

from __future__ import annotations

from typing import Any


class DataAccessLoggingError(Exception):
    """Base exception for all data-access logging errors."""

    #: Whether the error is allowed to propagate out of the library.
    fatal: bool = False


class ConfigurationError(DataAccessLoggingError):
    """Raised when a required collaborator is absent at construction.

    Attributes:
        collaborator: Name of the missing collaborator (e.g. ``"options"``).
    """

    fatal: bool = True

    def __init__(self, collaborator: str, message: str | None = None) -> None:
        self.collaborator = collaborator
        super().__init__(message or f"Required collaborator '{collaborator}' is missing")


class FormattingFault(DataAccessLoggingError):
    """Raised when an event payload cannot be rendered.

    Contained by the formatter, which degrades to a fallback line.
    """

    def __init__(self, category: str, cause: BaseException) -> None:
        self.category = category
        self.cause = cause
        super().__init__(f"[{category}] could not be formatted: {type(cause).__name__}")


class SubscriptionStateFault(DataAccessLoggingError):
    """Raised when an event arrives from an unexpected sender.

    Handlers treat it as a silent no-op.
    """

    def __init__(self, handler: str, sender: Any) -> None:
        self.handler = handler
        self.sender_type = type(sender).__name__
        super().__init__(f"{handler} ignored event from unexpected sender {self.sender_type}")


def require(value: Any, collaborator: str) -> Any:
    """Return ``value`` or raise :class:`ConfigurationError` when it is ``None``."""
    if value is None:
        raise ConfigurationError(collaborator)
    return value
