"""Orders Service application factory.

Demonstrates the host side of data-access logging: a runtime lifespan hook
(priority 75) builds the engine and session contexts and publishes them on
``app.state.data_access_runtime``; the data-access logging hook (priority
80) is discovered from installed packages and traces them.

Usage::

    from examples.orders_service.app import create_orders_app

    app = create_orders_app()
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI
from sqlalchemy import create_engine, text

from specula.foundation.application import (
    LIFESPAN_PRIORITY_DATA_ACCESS,
    LifespanContribution,
    compose_lifespan,
    discover_lifespan_hooks,
)
from specula.infra.data_logging import DataAccessRuntime, EngineCommandFactory

from .database import AmbientContextService, SessionContextFactory
from .router import router as orders_router

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

logger = logging.getLogger(__name__)

#: Seconds a writer waits for the SQLite database lock.
SQLITE_BUSY_TIMEOUT = 30

_SCHEMA = """
CREATE TABLE IF NOT EXISTS orders (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    item TEXT NOT NULL,
    quantity INTEGER NOT NULL
)
"""


def _runtime_contribution(database_url: str) -> LifespanContribution:
    @asynccontextmanager
    async def hook(app: Any) -> AsyncIterator[None]:
        """Create the engine and publish the data-access runtime.

        Args:
            app: The FastAPI application; receives the runtime on ``app.state``.
        """
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
        )
        with engine.begin() as conn:
            conn.execute(text(_SCHEMA))

        factory = SessionContextFactory(engine, name="orders-db")
        ambient = AmbientContextService(factory)
        commands = EngineCommandFactory(engine)
        commands.install()

        app.state.orders_contexts = factory
        app.state.ambient_context = ambient
        app.state.data_access_runtime = DataAccessRuntime(
            context_factory=factory,
            context_service=ambient,
            command_factory=commands,
        )
        logger.info("orders runtime published (%s)", engine.url.render_as_string())

        try:
            yield
        finally:
            commands.uninstall()
            engine.dispose()

    return LifespanContribution(hook=hook, priority=LIFESPAN_PRIORITY_DATA_ACCESS)


def create_orders_app(
    *,
    database_url: str = "sqlite:///orders.db",
    exclude_names: frozenset[str] = frozenset(),
    extra_hooks: Sequence[LifespanContribution] = (),
) -> FastAPI:
    """Create an Orders app with data-access logging.

    Lifespan hooks published under ``specula.lifespan`` are discovered and
    composed with the app's own runtime hook.

    Args:
        database_url: SQLite URL for the orders database. Use a file
            database: each concurrent request holds its own connection.
        exclude_names: Entry-point names to suppress.
        extra_hooks: Additional lifespan contributions, e.g. a data-access
            logging hook with a custom sink in place of an excluded one.
    """
    hooks = [
        *discover_lifespan_hooks(exclude_names=exclude_names),
        _runtime_contribution(database_url),
        *extra_hooks,
    ]
    app = FastAPI(title="Orders Service", version="0.1.0", lifespan=compose_lifespan(hooks))
    app.include_router(orders_router)
    return app
