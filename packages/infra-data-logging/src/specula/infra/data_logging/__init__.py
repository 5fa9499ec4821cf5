"""Specula Infra Data Logging — trace records for database contexts and commands."""

from specula.infra.data_logging.command_observer import DbCommandFactoryObserver
from specula.infra.data_logging.context_observer import DatabaseContextObserver
from specula.infra.data_logging.controller import DataAccessLoggingController
from specula.infra.data_logging.errors import (
    ConfigurationError,
    DataAccessLoggingError,
    FormattingFault,
    SubscriptionStateFault,
)
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
from specula.infra.data_logging.formatting import (
    format_ambient_assigned,
    format_ambient_change,
    format_command_created,
    format_context_created,
    format_context_disposed,
    format_context_referenced,
    format_dispose_ignored,
    format_transaction_committed,
    format_transaction_started,
)
from specula.infra.data_logging.lifespan import (
    create_lifespan_contribution,
    get_data_access_runtime,
    lifespan_contribution,
)
from specula.infra.data_logging.options import (
    DataAccessLoggingOptions,
    get_data_access_logging_options,
)
from specula.infra.data_logging.runtime import (
    DataAccessRuntime,
    DatabaseContext,
    DatabaseContextFactory,
    DatabaseContextService,
    DbCommandFactory,
    NotificationHook,
)
from specula.infra.data_logging.sqlalchemy_bridge import EngineCommandFactory
from specula.infra.data_logging.subscriptions import EventHook, SubscriptionRegistry

__all__ = [
    "AmbientContextAssignedEvent",
    "AmbientContextChangeEvent",
    "CommandCreatedEvent",
    "CommandParameter",
    "CommandType",
    "ConfigurationError",
    "ContextLifecycleEvent",
    "DataAccessLoggingController",
    "DataAccessLoggingError",
    "DataAccessLoggingOptions",
    "DataAccessRuntime",
    "DatabaseContext",
    "DatabaseContextFactory",
    "DatabaseContextObserver",
    "DatabaseContextService",
    "DbCommand",
    "DbCommandFactory",
    "DbCommandFactoryObserver",
    "EngineCommandFactory",
    "EventHook",
    "FormattingFault",
    "NotificationHook",
    "SubscriptionRegistry",
    "SubscriptionStateFault",
    "TransactionLifecycleEvent",
    "create_lifespan_contribution",
    "format_ambient_assigned",
    "format_ambient_change",
    "format_command_created",
    "format_context_created",
    "format_context_disposed",
    "format_context_referenced",
    "format_dispose_ignored",
    "format_transaction_committed",
    "format_transaction_started",
    "get_data_access_logging_options",
    "get_data_access_runtime",
    "lifespan_contribution",
]
