"""Specula Infra Observability — structlog logging and the trace sink."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from specula.foundation.application.contributions import (
    LIFESPAN_PRIORITY_OBSERVABILITY,
    LifespanContribution,
)
from specula.infra.observability.logging import (
    LoggingSettings,
    configure_logging,
    get_logger,
    get_logging_settings,
)
from specula.infra.observability.sink import TRACE_LEVEL, StructlogTraceSink, TraceSink

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


@asynccontextmanager
async def _observability_lifespan(app: Any) -> AsyncIterator[None]:
    """Configure structlog before any other hook creates a logger.

    Args:
        app: The host application instance (unused).
    """
    configure_logging()
    yield


lifespan_contribution = LifespanContribution(
    hook=_observability_lifespan,
    priority=LIFESPAN_PRIORITY_OBSERVABILITY,
)

__all__ = [
    "TRACE_LEVEL",
    "LoggingSettings",
    "StructlogTraceSink",
    "TraceSink",
    "configure_logging",
    "get_logger",
    "get_logging_settings",
    "lifespan_contribution",
]
