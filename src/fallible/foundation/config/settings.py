"""Environment-based configuration using pydantic-settings.

Covers the few knobs the runtime needs: the shared worker pool, the timeout
scheduler, agent mailboxes and logging.

Example:
    >>> from fallible.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.timeout.parallel
    30.0

    # Or with environment variables:
    # FALLIBLE_TIMEOUT_PARALLEL=5
    # FALLIBLE_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal

from pydantic import Field, PositiveFloat, PositiveInt, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_CPU_COUNT = os.cpu_count() or 1


class ExecutorSettings(BaseSettings):
    """Shared background pool used by LazyResult.start, AsyncResult and Agent."""

    model_config = SettingsConfigDict(
        env_prefix="FALLIBLE_EXECUTOR_",
        extra="ignore",
    )

    max_workers: PositiveInt = Field(default=min(32, _CPU_COUNT + 4), description="Worker threads in the shared pool")
    thread_name_prefix: str = "fallible-worker"


class TimeoutSettings(BaseSettings):
    """Timeout race defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FALLIBLE_TIMEOUT_",
        extra="ignore",
    )

    parallel: PositiveFloat = Field(default=30.0, description="Default in_parallel timeout in seconds")
    scheduler_thread_name: str = "fallible-timeout-scheduler"


class AgentSettings(BaseSettings):
    """Agent mailbox configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FALLIBLE_AGENT_",
        extra="ignore",
    )

    max_capacity: PositiveInt = Field(default=10_000, description="Pending updates allowed per agent")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FALLIBLE_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    format: Literal["json", "text"] = "text"

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        """Accept lowercase level names."""
        return v.upper() if isinstance(v, str) else v


class FallibleSettings(BaseSettings):
    """Root settings, loaded from FALLIBLE_* environment variables.

    Example environment variables:
        FALLIBLE_EXECUTOR_MAX_WORKERS=8
        FALLIBLE_TIMEOUT_PARALLEL=10
        FALLIBLE_AGENT_MAX_CAPACITY=500
        FALLIBLE_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="FALLIBLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    executor: ExecutorSettings = Field(default_factory=ExecutorSettings)
    timeout: TimeoutSettings = Field(default_factory=TimeoutSettings)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> FallibleSettings:
    """Get the process-wide settings instance (cached)."""
    return FallibleSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
