"""Orders Service — minimal host demonstrating data-access logging.

A FastAPI app whose database access runs through reference-counted
SQLAlchemy session contexts. The app publishes those contexts on
``app.state.data_access_runtime``; the installed ``data_access_logging``
lifespan hook traces them.

Modules:
    database: Session contexts, their factory, and the ambient context slot
    router:   FastAPI endpoints (POST /orders/, GET /orders/{id})
    app:      Application factory (create_orders_app)
"""

from .app import create_orders_app
from .database import AmbientContextService, SessionContext, SessionContextFactory

__all__ = [
    "AmbientContextService",
    "SessionContext",
    "SessionContextFactory",
    "create_orders_app",
]
