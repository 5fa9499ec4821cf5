"""Data-access logging lifespan hook.

Builds a :class:`DataAccessLoggingController` from the runtime published on
the host application (``app.state.data_access_runtime``), starts it on
startup and stops it on shutdown.

Priority 80 starts the hook AFTER observability (50) has configured
structlog and after the data-access runtime (75) has been published.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from specula.foundation.application import (
    LIFESPAN_PRIORITY_DATA_ACCESS_LOGGING,
    LifespanContribution,
)
from specula.infra.data_logging.controller import DataAccessLoggingController
from specula.infra.data_logging.errors import ConfigurationError
from specula.infra.data_logging.options import get_data_access_logging_options
from specula.infra.observability.sink import StructlogTraceSink

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from contextlib import AbstractAsyncContextManager

    from specula.infra.data_logging.options import DataAccessLoggingOptions
    from specula.infra.data_logging.runtime import DataAccessRuntime
    from specula.infra.observability.sink import TraceSink

logger = logging.getLogger(__name__)

RUNTIME_STATE_ATTRIBUTE = "data_access_runtime"
CONTROLLER_STATE_ATTRIBUTE = "data_access_logging"


def get_data_access_runtime(app: Any) -> DataAccessRuntime:
    """Return the runtime published on ``app.state``.

    Raises:
        ConfigurationError: If the host did not publish one.
    """
    state = getattr(app, "state", None)
    runtime = getattr(state, RUNTIME_STATE_ATTRIBUTE, None)
    if runtime is None:
        msg = (
            f"No data access runtime on app.state.{RUNTIME_STATE_ATTRIBUTE}; "
            "publish one before the data access logging hook starts"
        )
        raise ConfigurationError("runtime", msg)
    return runtime


def _data_access_logging_lifespan(
    options: DataAccessLoggingOptions | None,
    sink_factory: Callable[[], TraceSink],
) -> Callable[[Any], AbstractAsyncContextManager[None]]:
    @asynccontextmanager
    async def hook(app: Any) -> AsyncIterator[None]:
        """Manage the controller across the application lifecycle.

        Startup: build and start the controller, expose it on ``app.state``.
        Shutdown: stop it, also when the application exits with an error.

        Args:
            app: The host application carrying ``state.data_access_runtime``.
        """
        controller = DataAccessLoggingController(
            options=options if options is not None else get_data_access_logging_options(),
            sink=sink_factory(),
            runtime=get_data_access_runtime(app),
        )
        controller.start()
        setattr(app.state, CONTROLLER_STATE_ATTRIBUTE, controller)
        logger.info("data_access_logging_lifespan: controller started")

        try:
            yield
        finally:
            controller.stop()
            logger.info("data_access_logging_lifespan: controller stopped")

    return hook


def create_lifespan_contribution(
    options: DataAccessLoggingOptions | None = None,
    *,
    sink_factory: Callable[[], TraceSink] = StructlogTraceSink,
    priority: int = LIFESPAN_PRIORITY_DATA_ACCESS_LOGGING,
) -> LifespanContribution:
    """Build a lifespan contribution for data-access logging.

    Args:
        options: Options to use. Defaults to the cached environment options,
            read when the hook starts.
        sink_factory: Creates the trace sink when the hook starts, after
            logging has been configured.
        priority: Lifespan ordering priority.
    """
    return LifespanContribution(
        hook=_data_access_logging_lifespan(options, sink_factory),
        priority=priority,
    )


lifespan_contribution = create_lifespan_contribution()
