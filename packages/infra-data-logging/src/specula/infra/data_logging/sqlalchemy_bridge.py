"""SQLAlchemy engine bridge: a command factory fed by cursor executions.

Registers a ``before_cursor_execute`` listener on an engine and publishes a
:class:`~specula.infra.data_logging.events.CommandCreatedEvent` for every
statement about to be sent to the driver. The bridge satisfies
:class:`~specula.infra.data_logging.runtime.DbCommandFactory`, so it can be
passed as ``DataAccessRuntime.command_factory``.

Registration: call :meth:`EngineCommandFactory.install` once the engine
exists (typically in the lifespan hook that creates it) and
:meth:`EngineCommandFactory.uninstall` before disposing the engine.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine

from specula.infra.data_logging.events import (
    CommandCreatedEvent,
    CommandParameter,
    CommandType,
    DbCommand,
)
from specula.infra.data_logging.subscriptions import EventHook

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.engine.interfaces import DBAPICursor, ExecutionContext

logger = logging.getLogger(__name__)

_EVENT_NAME = "before_cursor_execute"


def named_parameters(parameters: Any, context: Any = None) -> tuple[CommandParameter, ...]:
    """Pair driver parameters with their names, preserving order.

    Mapping parameters keep their keys. Positional parameters take names
    from the compiled statement when the count matches, otherwise they are
    numbered ``?1``, ``?2``, ...
    """
    if not parameters:
        return ()
    if isinstance(parameters, Mapping):
        return tuple(CommandParameter(str(name), value) for name, value in parameters.items())

    values = tuple(parameters)
    names = getattr(getattr(context, "compiled", None), "positiontup", None)
    if names is not None and len(names) == len(values):
        return tuple(CommandParameter(str(name), value) for name, value in zip(names, values))
    return tuple(CommandParameter(f"?{index}", value) for index, value in enumerate(values, 1))


class EngineCommandFactory:
    """Publishes every statement an engine executes as a created command.

    ``executemany`` batches are published once, without a parameter listing.

    Args:
        engine: Sync or async SQLAlchemy engine.
    """

    def __init__(self, engine: Engine | AsyncEngine) -> None:
        self._engine: Engine = engine.sync_engine if isinstance(engine, AsyncEngine) else engine
        self.command_created: EventHook[CommandCreatedEvent] = EventHook("command_created")
        self._lock = threading.Lock()

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def is_installed(self) -> bool:
        return event.contains(self._engine, _EVENT_NAME, self._before_cursor_execute)

    def install(self) -> bool:
        """Register the engine listener. Returns False if already registered."""
        with self._lock:
            if self.is_installed:
                return False
            event.listen(self._engine, _EVENT_NAME, self._before_cursor_execute)
        logger.info("engine_command_factory_installed: %s", self._engine.url.render_as_string())
        return True

    def uninstall(self) -> bool:
        """Remove the engine listener. Returns False if it was not registered."""
        with self._lock:
            if not self.is_installed:
                return False
            event.remove(self._engine, _EVENT_NAME, self._before_cursor_execute)
        logger.info("engine_command_factory_uninstalled: %s", self._engine.url.render_as_string())
        return True

    def _before_cursor_execute(
        self,
        conn: Any,
        cursor: DBAPICursor,
        statement: str,
        parameters: Any,
        context: ExecutionContext | None,
        executemany: bool,
    ) -> None:
        if not len(self.command_created):
            return
        try:
            command = DbCommand(
                command_text=statement,
                command_type=CommandType.TEXT,
                parameters=() if executemany else named_parameters(parameters, context),
            )
            self.command_created.fire(self, CommandCreatedEvent(command=command))
        except Exception:
            logger.warning("command_created notification failed", exc_info=True)
