"""Lifecycle controller for data-access logging.

Decides once, at construction, which observers exist, then attaches them
on :meth:`DataAccessLoggingController.start` and detaches them on
:meth:`DataAccessLoggingController.stop`.

Example::

    controller = DataAccessLoggingController(
        options=DataAccessLoggingOptions(),
        sink=StructlogTraceSink(),
        runtime=DataAccessRuntime(
            context_factory=factory,
            context_service=service,
            command_factory=commands,
        ),
    )

    with controller:
        ...  # data access is traced
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from specula.infra.data_logging.command_observer import DbCommandFactoryObserver
from specula.infra.data_logging.context_observer import DatabaseContextObserver
from specula.infra.data_logging.errors import require

if TYPE_CHECKING:
    from specula.infra.data_logging.observer import EventObserver
    from specula.infra.data_logging.options import DataAccessLoggingOptions
    from specula.infra.data_logging.runtime import DataAccessRuntime
    from specula.infra.observability.sink import TraceSink

logger = logging.getLogger(__name__)


class DataAccessLoggingController:
    """Start/stop contract governing when observers attach and detach.

    A disabled domain never gets an observer, so nothing is ever attached to
    its sources for the lifetime of the controller. Per-context bindings are
    not removed by :meth:`stop`; each unwinds when its context is disposed.

    Args:
        options: Which observation domains are enabled. Read once.
        sink: Destination for trace records.
        runtime: Runtime collaborators. Those needed by an enabled domain
            must be present.

    Raises:
        ConfigurationError: If options, sink, runtime, or a collaborator
            required by an enabled domain is None.
    """

    def __init__(
        self,
        options: DataAccessLoggingOptions,
        sink: TraceSink,
        runtime: DataAccessRuntime,
    ) -> None:
        self._options = require(options, "options")
        self._sink = require(sink, "sink")
        runtime = require(runtime, "runtime")

        self._context_observer: DatabaseContextObserver | None = None
        self._command_observer: DbCommandFactoryObserver | None = None
        if self._options.observe_contexts:
            self._context_observer = DatabaseContextObserver(
                sink, runtime.context_factory, runtime.context_service
            )
        if self._options.observe_commands:
            self._command_observer = DbCommandFactoryObserver(sink, runtime.command_factory)

        self._lock = threading.Lock()
        self._started = False

    @property
    def options(self) -> DataAccessLoggingOptions:
        return self._options

    @property
    def context_observer(self) -> DatabaseContextObserver | None:
        """The context observer, or None when context observation is disabled."""
        return self._context_observer

    @property
    def command_observer(self) -> DbCommandFactoryObserver | None:
        """The command observer, or None when command observation is disabled."""
        return self._command_observer

    @property
    def is_running(self) -> bool:
        return self._started

    def _observers(self) -> list[EventObserver]:
        return [o for o in (self._context_observer, self._command_observer) if o is not None]

    def start(self) -> None:
        """Attach every enabled observer. No-op when already started."""
        with self._lock:
            if self._started:
                logger.debug("DataAccessLoggingController already started")
                return
            try:
                for observer in self._observers():
                    observer.attach()
            except Exception:
                for observer in self._observers():
                    observer.detach()
                raise
            self._started = True
        logger.info(
            "Data access logging started (contexts=%s, commands=%s)",
            self._options.observe_contexts,
            self._options.observe_commands,
        )

    def stop(self) -> None:
        """Detach every attached observer.

        Safe to call before :meth:`start`, after a failed start, and more
        than once; each observer detaches at most once.
        """
        detached = False
        with self._lock:
            for observer in reversed(self._observers()):
                try:
                    detached = observer.detach() or detached
                except Exception:
                    logger.exception("Error detaching %s", type(observer).__name__)
            was_started = self._started
            self._started = False
        if was_started or detached:
            logger.info("Data access logging stopped")

    def __enter__(self) -> DataAccessLoggingController:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.stop()
