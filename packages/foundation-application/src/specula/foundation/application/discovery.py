"""Entry-point-based auto-discovery utilities.

Loads contributions published by installed packages through
``importlib.metadata.entry_points()``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib.metadata import entry_points
from typing import Any

from specula.foundation.application.contributions import (
    LIFESPAN_ENTRY_POINT_GROUP,
    LifespanContribution,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DiscoveredContribution:
    """A single discovered entry point contribution.

    Attributes:
        name: Entry point name (e.g., ``"data_access_logging"``).
        group: Entry point group (e.g., ``"specula.lifespan"``).
        value: The loaded Python object.
    """

    name: str
    group: str
    value: Any


def discover(
    group: str,
    *,
    exclude_names: frozenset[str] = frozenset(),
) -> list[DiscoveredContribution]:
    """Discover and load all entry points for a given group.

    Entry points that fail to load are logged and skipped (fail-soft).

    Args:
        group: The entry point group name.
        exclude_names: Set of entry point names to skip.

    Returns:
        List of successfully loaded contributions.
    """
    contributions: list[DiscoveredContribution] = []

    for ep in entry_points(group=group):
        if ep.name in exclude_names:
            logger.debug("Skipping excluded entry point %s:%s", group, ep.name)
            continue
        try:
            loaded = ep.load()
        except Exception:
            logger.exception("Failed to load entry point %s:%s", group, ep.name)
            continue
        contributions.append(DiscoveredContribution(name=ep.name, group=group, value=loaded))
        logger.debug("Loaded entry point %s:%s", group, ep.name)

    logger.info("Discovered %d contributions in group %r", len(contributions), group)
    return contributions


def discover_lifespan_hooks(
    *,
    exclude_names: frozenset[str] = frozenset(),
) -> list[LifespanContribution]:
    """Load every :class:`LifespanContribution` published under ``specula.lifespan``.

    Loaded objects of any other type are ignored with a warning.
    """
    hooks: list[LifespanContribution] = []
    for contrib in discover(LIFESPAN_ENTRY_POINT_GROUP, exclude_names=exclude_names):
        if not isinstance(contrib.value, LifespanContribution):
            logger.warning(
                "Entry point %s:%s is not a LifespanContribution (got %s)",
                contrib.group,
                contrib.name,
                type(contrib.value).__name__,
            )
            continue
        hooks.append(contrib.value)
    return hooks
