"""Configuration management using pydantic-settings."""

from .settings import (
    AgentSettings,
    ExecutorSettings,
    FallibleSettings,
    LoggingSettings,
    TimeoutSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "AgentSettings",
    "ExecutorSettings",
    "FallibleSettings",
    "LoggingSettings",
    "TimeoutSettings",
    "clear_settings_cache",
    "get_settings",
]
