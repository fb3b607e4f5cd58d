"""Foundation layer: failure taxonomy, exceptions and configuration."""

from .config import FallibleSettings, clear_settings_cache, get_settings
from .errors import (
    CodeDescriptionFailure,
    DescriptionFailure,
    ExceptionFailure,
    Failure,
    FallibleError,
    InvalidArgumentError,
    MultipleFailures,
    NoValuePresentError,
)

__all__ = [
    "FallibleSettings", "get_settings", "clear_settings_cache",
    "Failure", "DescriptionFailure", "CodeDescriptionFailure", "ExceptionFailure", "MultipleFailures",
    "FallibleError", "InvalidArgumentError", "NoValuePresentError",
]
