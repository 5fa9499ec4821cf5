"""Unit tests for specula.infra.data_logging.lifespan."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from unittest.mock import patch

import pytest

from specula.foundation.application import LifespanContribution
from specula.infra.data_logging.controller import DataAccessLoggingController
from specula.infra.data_logging.errors import ConfigurationError
from specula.infra.data_logging.formatting import COMMAND_CREATED
from specula.infra.data_logging.lifespan import (
    create_lifespan_contribution,
    get_data_access_runtime,
    lifespan_contribution,
)
from specula.infra.data_logging.options import DataAccessLoggingOptions
from specula.infra.observability.sink import StructlogTraceSink


def _app(runtime: Any = None) -> SimpleNamespace:
    state = SimpleNamespace()
    if runtime is not None:
        state.data_access_runtime = runtime
    return SimpleNamespace(state=state)


@pytest.mark.unit
class TestLifespanContribution:
    def test_is_lifespan_contribution(self) -> None:
        assert isinstance(lifespan_contribution, LifespanContribution)

    def test_priority_is_80(self) -> None:
        assert lifespan_contribution.priority == 80

    def test_hook_is_callable(self) -> None:
        assert callable(lifespan_contribution.hook)

    def test_custom_priority(self) -> None:
        assert create_lifespan_contribution(priority=90).priority == 90


@pytest.mark.unit
class TestGetDataAccessRuntime:
    def test_returns_published_runtime(self, runtime: Any) -> None:
        assert get_data_access_runtime(_app(runtime)) is runtime

    def test_missing_runtime_raises(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            get_data_access_runtime(_app())
        assert exc_info.value.collaborator == "runtime"
        assert "app.state.data_access_runtime" in str(exc_info.value)


@pytest.mark.unit
class TestDataAccessLoggingLifespan:
    @pytest.mark.asyncio
    async def test_controller_runs_for_app_lifetime(self, runtime: Any, sink: Any) -> None:
        contribution = create_lifespan_contribution(
            DataAccessLoggingOptions(), sink_factory=lambda: sink
        )
        app = _app(runtime)

        async with contribution.hook(app):
            controller = app.state.data_access_logging
            assert isinstance(controller, DataAccessLoggingController)
            assert controller.is_running
            runtime.command_factory.create("SELECT 1")

        assert not controller.is_running
        assert len(runtime.command_factory.command_created) == 0
        assert sink.categories == [COMMAND_CREATED]

    @pytest.mark.asyncio
    async def test_controller_stopped_when_app_fails(self, runtime: Any, sink: Any) -> None:
        contribution = create_lifespan_contribution(
            DataAccessLoggingOptions(), sink_factory=lambda: sink
        )
        app = _app(runtime)

        with pytest.raises(RuntimeError, match="boom"):
            async with contribution.hook(app):
                raise RuntimeError("boom")

        assert not app.state.data_access_logging.is_running
        assert len(runtime.context_factory.context_created) == 0

    @pytest.mark.asyncio
    async def test_startup_fails_without_runtime(self, sink: Any) -> None:
        contribution = create_lifespan_contribution(
            DataAccessLoggingOptions(), sink_factory=lambda: sink
        )
        with pytest.raises(ConfigurationError):
            async with contribution.hook(_app()):
                pass

    @pytest.mark.asyncio
    @patch("specula.infra.data_logging.lifespan.get_data_access_logging_options")
    async def test_defaults_to_cached_options_and_structlog_sink(
        self, mock_get_options: Any, runtime: Any
    ) -> None:
        mock_get_options.return_value = DataAccessLoggingOptions(observe_commands=False)
        app = _app(runtime)

        async with create_lifespan_contribution().hook(app):
            controller = app.state.data_access_logging
            assert controller.command_observer is None
            assert isinstance(controller._sink, StructlogTraceSink)

        mock_get_options.assert_called_once()
