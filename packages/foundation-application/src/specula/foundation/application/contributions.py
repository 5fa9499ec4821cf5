"""Contribution types for the auto-discovery system.

Packages declare lifespan hooks through entry points; the host composes
them in priority order. These types are framework-agnostic and carry no
dependency on any web framework or database library.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Recommended lifespan priority constants
LIFESPAN_PRIORITY_OBSERVABILITY = 50
LIFESPAN_PRIORITY_DATA_ACCESS = 75
LIFESPAN_PRIORITY_DATA_ACCESS_LOGGING = 80

#: Entry point group scanned by hosts for lifespan contributions.
LIFESPAN_ENTRY_POINT_GROUP = "specula.lifespan"


@dataclass(frozen=True, slots=True)
class LifespanContribution:
    """Describes a lifespan hook to be auto-discovered and registered.

    Attributes:
        hook: An async context manager factory ``(app) -> AsyncContextManager[None]``.
        priority: Ordering priority. Lower priorities start first (and shut down last).
    """

    hook: Any  # Callable[[Any], AsyncContextManager[None]]
    priority: int = 500
