"""Specula Foundation Application — lifespan contributions and discovery."""

from specula.foundation.application.contributions import (
    LIFESPAN_ENTRY_POINT_GROUP,
    LIFESPAN_PRIORITY_DATA_ACCESS,
    LIFESPAN_PRIORITY_DATA_ACCESS_LOGGING,
    LIFESPAN_PRIORITY_OBSERVABILITY,
    LifespanContribution,
)
from specula.foundation.application.discovery import (
    DiscoveredContribution,
    discover,
    discover_lifespan_hooks,
)
from specula.foundation.application.lifespan import compose_lifespan

__all__ = [
    "LIFESPAN_ENTRY_POINT_GROUP",
    "LIFESPAN_PRIORITY_DATA_ACCESS",
    "LIFESPAN_PRIORITY_DATA_ACCESS_LOGGING",
    "LIFESPAN_PRIORITY_OBSERVABILITY",
    "DiscoveredContribution",
    "LifespanContribution",
    "compose_lifespan",
    "discover",
    "discover_lifespan_hooks",
]
