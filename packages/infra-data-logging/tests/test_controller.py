"""Unit tests for specula.infra.data_logging.controller."""

from __future__ import annotations

import threading
from typing import Any

import pytest

from specula.infra.data_logging.controller import DataAccessLoggingController
from specula.infra.data_logging.errors import ConfigurationError
from specula.infra.data_logging.formatting import COMMAND_CREATED, CONTEXT_CREATED
from specula.infra.data_logging.options import DataAccessLoggingOptions
from specula.infra.data_logging.runtime import DataAccessRuntime
from specula.infra.data_logging.subscriptions import EventHook


class _ClosedHook(EventHook[Any]):
    def add(self, handler: Any) -> bool:
        raise RuntimeError("factory closed")


def _subscription_count(runtime: DataAccessRuntime) -> int:
    return (
        len(runtime.context_factory.context_created)
        + len(runtime.context_factory.context_referenced)
        + len(runtime.context_service.ambient_value_changed)
        + len(runtime.context_service.ambient_value_assigned)
        + len(runtime.command_factory.command_created)
    )


class TestConstruction:
    @pytest.mark.unit
    def test_missing_options_raises(self, sink: Any, runtime: DataAccessRuntime) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            DataAccessLoggingController(options=None, sink=sink, runtime=runtime)  # type: ignore[arg-type]
        assert exc_info.value.collaborator == "options"

    @pytest.mark.unit
    def test_missing_sink_raises(self, runtime: DataAccessRuntime) -> None:
        with pytest.raises(ConfigurationError, match="sink"):
            DataAccessLoggingController(
                options=DataAccessLoggingOptions(), sink=None, runtime=runtime  # type: ignore[arg-type]
            )

    @pytest.mark.unit
    def test_missing_runtime_raises(self, sink: Any) -> None:
        with pytest.raises(ConfigurationError, match="runtime"):
            DataAccessLoggingController(
                options=DataAccessLoggingOptions(), sink=sink, runtime=None  # type: ignore[arg-type]
            )

    @pytest.mark.unit
    def test_enabled_domain_requires_its_collaborator(
        self, sink: Any, context_factory: Any, context_service: Any
    ) -> None:
        runtime = DataAccessRuntime(context_factory=context_factory, context_service=context_service)
        with pytest.raises(ConfigurationError) as exc_info:
            DataAccessLoggingController(DataAccessLoggingOptions(), sink, runtime)
        assert exc_info.value.collaborator == "command_factory"

    @pytest.mark.unit
    def test_disabled_domain_needs_no_collaborator(
        self, sink: Any, context_factory: Any, context_service: Any
    ) -> None:
        runtime = DataAccessRuntime(context_factory=context_factory, context_service=context_service)
        controller = DataAccessLoggingController(
            DataAccessLoggingOptions(observe_commands=False), sink, runtime
        )
        assert controller.command_observer is None
        assert controller.context_observer is not None

    @pytest.mark.unit
    def test_error_is_fatal(self) -> None:
        assert ConfigurationError("options").fatal is True


class TestStartStop:
    @pytest.mark.unit
    def test_start_attaches_enabled_observers(
        self, controller: DataAccessLoggingController, runtime: DataAccessRuntime
    ) -> None:
        assert controller.is_running
        assert controller.context_observer.is_attached
        assert controller.command_observer.is_attached
        assert _subscription_count(runtime) == 5

    @pytest.mark.unit
    def test_start_twice_is_noop(
        self, controller: DataAccessLoggingController, runtime: DataAccessRuntime
    ) -> None:
        controller.start()
        assert runtime.context_factory.context_created.add_calls == 1
        assert runtime.command_factory.command_created.add_calls == 1

    @pytest.mark.unit
    def test_stop_detaches_all(
        self, controller: DataAccessLoggingController, runtime: DataAccessRuntime
    ) -> None:
        controller.stop()
        assert not controller.is_running
        assert _subscription_count(runtime) == 0

    @pytest.mark.unit
    def test_stop_before_start_is_noop(self, sink: Any, runtime: DataAccessRuntime) -> None:
        controller = DataAccessLoggingController(DataAccessLoggingOptions(), sink, runtime)
        controller.stop()
        assert runtime.context_factory.context_created.remove_calls == 0

    @pytest.mark.unit
    def test_stop_twice_detaches_once(
        self, controller: DataAccessLoggingController, runtime: DataAccessRuntime
    ) -> None:
        controller.stop()
        controller.stop()
        assert runtime.context_factory.context_created.remove_calls == 1
        assert runtime.command_factory.command_created.remove_calls == 1

    @pytest.mark.unit
    def test_restart_after_stop(
        self, controller: DataAccessLoggingController, runtime: DataAccessRuntime, sink: Any
    ) -> None:
        controller.stop()
        controller.start()

        runtime.command_factory.create("SELECT 1")

        assert controller.is_running
        assert sink.categories == [COMMAND_CREATED]

    @pytest.mark.unit
    def test_failed_start_rolls_back(self, sink: Any, runtime: DataAccessRuntime) -> None:
        runtime.command_factory.command_created = _ClosedHook("command_created")
        controller = DataAccessLoggingController(DataAccessLoggingOptions(), sink, runtime)

        with pytest.raises(RuntimeError, match="factory closed"):
            controller.start()

        assert not controller.is_running
        assert not controller.context_observer.is_attached
        assert len(runtime.context_factory.context_created) == 0

    @pytest.mark.unit
    def test_context_manager(self, sink: Any, runtime: DataAccessRuntime) -> None:
        with DataAccessLoggingController(DataAccessLoggingOptions(), sink, runtime) as controller:
            assert controller.is_running
            runtime.context_factory.create("orders-db", "k1")

        assert not controller.is_running
        assert _subscription_count(runtime) == 0
        assert sink.categories == [CONTEXT_CREATED]


class TestOptionGating:
    @pytest.mark.unit
    def test_disabled_commands_never_subscribe(self, sink: Any, runtime: DataAccessRuntime) -> None:
        controller = DataAccessLoggingController(
            DataAccessLoggingOptions(observe_commands=False), sink, runtime
        )
        controller.start()
        runtime.command_factory.create("SELECT 1")
        controller.stop()

        assert runtime.command_factory.command_created.add_calls == 0
        assert sink.records == []

    @pytest.mark.unit
    def test_disabled_contexts_never_subscribe(self, sink: Any, runtime: DataAccessRuntime) -> None:
        controller = DataAccessLoggingController(
            DataAccessLoggingOptions(observe_contexts=False), sink, runtime
        )
        controller.start()
        context = runtime.context_factory.create("orders-db", "k1")
        context.dispose()
        controller.stop()

        assert runtime.context_factory.add_calls == 0
        assert runtime.context_service.ambient_value_changed.add_calls == 0
        assert context.handler_count == 0
        assert sink.records == []

    @pytest.mark.unit
    def test_both_disabled_is_inert(self, sink: Any, runtime: DataAccessRuntime) -> None:
        with DataAccessLoggingController(
            DataAccessLoggingOptions(observe_contexts=False, observe_commands=False), sink, runtime
        ) as controller:
            assert controller.context_observer is None
            assert controller.command_observer is None
        assert _subscription_count(runtime) == 0

    @pytest.mark.unit
    def test_command_observer_skipped_when_trace_disabled(
        self, make_sink: Any, runtime: DataAccessRuntime
    ) -> None:
        sink = make_sink(enabled=False)
        with DataAccessLoggingController(DataAccessLoggingOptions(), sink, runtime) as controller:
            assert controller.context_observer.is_attached
            assert not controller.command_observer.is_attached
        assert runtime.command_factory.command_created.add_calls == 0


class TestConcurrentStartStop:
    @staticmethod
    def _hooks(runtime: DataAccessRuntime) -> list[Any]:
        return [
            runtime.context_factory.context_created,
            runtime.context_factory.context_referenced,
            runtime.context_service.ambient_value_changed,
            runtime.context_service.ambient_value_assigned,
            runtime.command_factory.command_created,
        ]

    @pytest.mark.unit
    def test_racing_start_stop_never_duplicates_or_leaks(
        self, sink: Any, runtime: DataAccessRuntime
    ) -> None:
        controller = DataAccessLoggingController(DataAccessLoggingOptions(), sink, runtime)
        workers = 8
        rounds = 40
        violations: list[str] = []

        def check() -> None:
            expected = 1 if controller.is_running else 0
            for hook in self._hooks(runtime):
                if len(hook) > 1:
                    violations.append(f"{hook.name} has {len(hook)} handlers")
                if hook.add_calls - hook.remove_calls != expected:
                    violations.append(
                        f"{hook.name}: {hook.add_calls} adds, {hook.remove_calls} removes, "
                        f"running={controller.is_running}"
                    )

        barrier = threading.Barrier(workers, action=check)

        def run(worker: int) -> None:
            for round_ in range(rounds):
                if (worker + round_) % 3:
                    controller.start()
                else:
                    controller.stop()
                barrier.wait()

        threads = [threading.Thread(target=run, args=(n,)) for n in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert violations == []
        controller.stop()
        assert all(len(hook) == 0 for hook in self._hooks(runtime))

    @pytest.mark.unit
    def test_concurrent_starts_attach_once(self, sink: Any, runtime: DataAccessRuntime) -> None:
        controller = DataAccessLoggingController(DataAccessLoggingOptions(), sink, runtime)
        barrier = threading.Barrier(8)

        def run() -> None:
            barrier.wait()
            controller.start()

        threads = [threading.Thread(target=run) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert controller.is_running
        assert all(hook.add_calls == 1 for hook in self._hooks(runtime))
        controller.stop()
