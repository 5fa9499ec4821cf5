"""Data-access logging options using Pydantic settings.

Settings are loaded from environment variables with the
``DATA_ACCESS_LOGGING_`` prefix and are immutable once built.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DataAccessLoggingOptions(BaseSettings):
    """Which observation domains are active.

    Environment Variables:
        DATA_ACCESS_LOGGING_OBSERVE_CONTEXTS: Trace database context and
            transaction lifecycle (default: true)
        DATA_ACCESS_LOGGING_OBSERVE_COMMANDS: Trace created database
            commands (default: true)

    Example:
        >>> options = DataAccessLoggingOptions(observe_commands=False)
        >>> options.observe_contexts, options.observe_commands
        (True, False)
    """

    model_config = SettingsConfigDict(
        env_prefix="DATA_ACCESS_LOGGING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    observe_contexts: bool = Field(
        default=True,
        description="Trace database context and transaction lifecycle events",
    )
    observe_commands: bool = Field(
        default=True,
        description="Trace every command produced by the command factory",
    )


@lru_cache(maxsize=1)
def get_data_access_logging_options() -> DataAccessLoggingOptions:
    """Get cached options singleton.

    Returns:
        DataAccessLoggingOptions loaded from the environment.
    """
    return DataAccessLoggingOptions()
