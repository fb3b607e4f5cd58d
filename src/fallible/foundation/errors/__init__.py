"""Failures and exceptions for fallible.

- Failure variants: DescriptionFailure, CodeDescriptionFailure, ExceptionFailure, MultipleFailures
- Exceptions: FallibleError and the few conditions that are raised instead of carried
"""

from .errors import (
    CompletionError,
    FailureException,
    FallibleError,
    InvalidArgumentError,
    MailboxFullError,
    NoValuePresentError,
    SchedulerShutdownError,
)
from .failure import (
    CodeDescriptionFailure,
    DescriptionFailure,
    ExceptionFailure,
    Failure,
    MultipleFailures,
)

__all__ = [
    # Failures
    "Failure", "DescriptionFailure", "CodeDescriptionFailure", "ExceptionFailure", "MultipleFailures",
    # Exceptions
    "FallibleError", "InvalidArgumentError", "NoValuePresentError", "FailureException",
    "CompletionError", "SchedulerShutdownError", "MailboxFullError",
]
