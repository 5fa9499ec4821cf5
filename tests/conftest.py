"""Shared fixtures for integration tests."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
from examples.orders_service.app import create_orders_app
from fastapi.testclient import TestClient

from specula.infra.data_logging import DataAccessLoggingOptions, create_lifespan_contribution

if TYPE_CHECKING:
    from pathlib import Path

    from fastapi import FastAPI

# Entry-point names replaced by test doubles.
TEST_EXCLUDE_NAMES = frozenset({"data_access_logging"})


class RecordingSink:
    """TraceSink that keeps every record in memory."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str]] = []

    def is_trace_enabled(self) -> bool:
        return True

    def trace(self, message: str, **fields: Any) -> None:
        self.records.append((fields["category"], message))

    @property
    def categories(self) -> list[str]:
        return [category for category, _ in self.records]

    def messages(self, category: str) -> list[str]:
        return [message for cat, message in self.records if cat == category]


@pytest.fixture()
def trace_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def orders_app(trace_sink: RecordingSink, tmp_path: Path) -> FastAPI:
    """Create a fresh Orders app on a temporary database, tracing into ``trace_sink``."""
    return create_orders_app(
        database_url=f"sqlite:///{tmp_path / 'orders.db'}",
        exclude_names=TEST_EXCLUDE_NAMES,
        extra_hooks=[
            create_lifespan_contribution(
                DataAccessLoggingOptions(), sink_factory=lambda: trace_sink
            )
        ],
    )


@pytest.fixture()
def client(orders_app: FastAPI) -> TestClient:
    """TestClient for the Orders app (lifespan hooks executed)."""
    with TestClient(orders_app) as c:
        yield c  # type: ignore[misc]
