"""Shared fixtures for infra-data-logging tests.

The data-access runtime is external, so these fakes stand in for it. Every
hook is a :class:`CountingHook` so tests can assert how often the observers
subscribed and unsubscribed.
"""

from __future__ import annotations

from typing import Any

import pytest

from specula.infra.data_logging.controller import DataAccessLoggingController
from specula.infra.data_logging.events import (
    AmbientContextAssignedEvent,
    AmbientContextChangeEvent,
    CommandCreatedEvent,
    CommandParameter,
    CommandType,
    ContextLifecycleEvent,
    DbCommand,
    TransactionLifecycleEvent,
)
from specula.infra.data_logging.options import DataAccessLoggingOptions
from specula.infra.data_logging.runtime import DataAccessRuntime
from specula.infra.data_logging.subscriptions import EventHook


class CountingHook(EventHook[Any]):
    """EventHook that counts add/remove calls."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.add_calls = 0
        self.remove_calls = 0

    def add(self, handler: Any) -> bool:
        self.add_calls += 1
        return super().add(handler)

    def remove(self, handler: Any) -> bool:
        self.remove_calls += 1
        return super().remove(handler)


class FakeContext:
    """Reference-counted database context."""

    def __init__(self, name: str | None, key: Any) -> None:
        self.name = name
        self.key = key
        self.reference_count = 1
        self.transaction_started = CountingHook("transaction_started")
        self.transaction_committed = CountingHook("transaction_committed")
        self.disposed = CountingHook("disposed")
        self.dispose_ignored = CountingHook("dispose_ignored")

    @property
    def hooks(self) -> list[CountingHook]:
        return [
            self.transaction_started,
            self.transaction_committed,
            self.disposed,
            self.dispose_ignored,
        ]

    @property
    def handler_count(self) -> int:
        return sum(len(hook) for hook in self.hooks)

    def begin_transaction(self) -> None:
        self.transaction_started.fire(self, TransactionLifecycleEvent(context=self))

    def commit(self) -> None:
        self.transaction_committed.fire(self, TransactionLifecycleEvent(context=self))

    def dispose(self) -> None:
        self.reference_count -= 1
        if self.reference_count > 0:
            self.dispose_ignored.fire(self, ContextLifecycleEvent(context=self))
            return
        self.disposed.fire(self, ContextLifecycleEvent(context=self))


class FakeContextFactory:
    """Creates contexts; asking for a live key again adds a reference."""

    def __init__(self) -> None:
        self.context_created = CountingHook("context_created")
        self.context_referenced = CountingHook("context_referenced")
        self._contexts: dict[Any, FakeContext] = {}

    @property
    def add_calls(self) -> int:
        return self.context_created.add_calls + self.context_referenced.add_calls

    def create(self, name: str | None, key: Any = None) -> FakeContext:
        key = name if key is None else key
        existing = self._contexts.get(key)
        if existing is not None and existing.reference_count > 0:
            existing.reference_count += 1
            self.context_referenced.fire(self, ContextLifecycleEvent(context=existing))
            return existing

        context = FakeContext(name, key)
        self._contexts[key] = context
        self.context_created.fire(self, ContextLifecycleEvent(context=context))
        return context


class FakeContextService:
    """Ambient context slot."""

    def __init__(self) -> None:
        self.ambient_value_changed = CountingHook("ambient_value_changed")
        self.ambient_value_assigned = CountingHook("ambient_value_assigned")
        self.active: FakeContext | None = None

    def activate(self, context: FakeContext | None, *, thread_context_changed: bool = False) -> None:
        previous, self.active = self.active, context
        self.ambient_value_changed.fire(
            self,
            AmbientContextChangeEvent(
                current_context=context,
                previous_context=previous,
                thread_context_changed=thread_context_changed,
            ),
        )

    def assign(self, context: FakeContext | None, count: int) -> None:
        self.active = context
        self.ambient_value_assigned.fire(
            self, AmbientContextAssignedEvent(active_context=context, context_count=count)
        )


class FakeCommandFactory:
    def __init__(self) -> None:
        self.command_created = CountingHook("command_created")

    def create(
        self,
        text: str | None,
        parameters: list[CommandParameter] | None = None,
        command_type: CommandType = CommandType.TEXT,
    ) -> DbCommand:
        command = DbCommand(command_text=text, command_type=command_type, parameters=parameters)
        self.command_created.fire(self, CommandCreatedEvent(command=command))
        return command


class RecordingSink:
    """TraceSink that keeps every record."""

    def __init__(self, *, enabled: bool = True) -> None:
        self.enabled = enabled
        self.records: list[tuple[str, str]] = []

    def is_trace_enabled(self) -> bool:
        return self.enabled

    def trace(self, message: str, **fields: Any) -> None:
        self.records.append((fields.get("category", ""), message))

    @property
    def messages(self) -> list[str]:
        return [message for _, message in self.records]

    @property
    def categories(self) -> list[str]:
        return [category for category, _ in self.records]


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def context_factory() -> FakeContextFactory:
    return FakeContextFactory()


@pytest.fixture()
def context_service() -> FakeContextService:
    return FakeContextService()


@pytest.fixture()
def command_factory() -> FakeCommandFactory:
    return FakeCommandFactory()


@pytest.fixture()
def runtime(
    context_factory: FakeContextFactory,
    context_service: FakeContextService,
    command_factory: FakeCommandFactory,
) -> DataAccessRuntime:
    return DataAccessRuntime(
        context_factory=context_factory,
        context_service=context_service,
        command_factory=command_factory,
    )


@pytest.fixture()
def controller(sink: RecordingSink, runtime: DataAccessRuntime) -> DataAccessLoggingController:
    """A started controller with both domains enabled; stopped on teardown."""
    ctl = DataAccessLoggingController(options=DataAccessLoggingOptions(), sink=sink, runtime=runtime)
    ctl.start()
    yield ctl  # type: ignore[misc]
    ctl.stop()


@pytest.fixture()
def make_sink() -> Any:
    """Factory for sinks with a chosen trace level."""
    return RecordingSink


@pytest.fixture()
def make_context() -> Any:
    """Factory for standalone contexts (not created through a factory)."""
    return FakeContext
