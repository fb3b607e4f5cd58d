"""fallible: composable results and failures without exceptions as control flow.

Build chains of computation that are eager (DirectResult), deferred
(LazyResult) or future-backed (AsyncResult), tracking either a success value
or one-or-more Failures. Plus atomic cells (Mutation, Agent) whose updates are
serialized per cell.

Example:
    >>> from fallible import LazyResult, join, ok, failure
    >>>
    >>> lazy = LazyResult.create(lambda: "hello").map(str.upper)
    >>> lazy.result().get_or_throw()
    'HELLO'
    >>> join(sum, ok(5), ok(4), ok(3)).get_or_throw()
    12
    >>> failure("no stock").map(str.upper).get_failure().describe()
    'no stock'
"""

import logging

from .foundation.config import FallibleSettings, clear_settings_cache, get_settings
from .foundation.errors import (
    CodeDescriptionFailure,
    CompletionError,
    DescriptionFailure,
    ExceptionFailure,
    Failure,
    FailureException,
    FallibleError,
    InvalidArgumentError,
    MailboxFullError,
    MultipleFailures,
    NoValuePresentError,
    SchedulerShutdownError,
)
from .monads import (
    AsyncResult,
    DirectResult,
    FaultKind,
    LazyResult,
    LazyState,
    Result,
    create_checked,
    failure,
    failures,
    flatten,
    from_supplier,
    join,
    ok,
    sequence,
)
from .runtime.concurrency import (
    Agent,
    Mutation,
    ScheduledTask,
    ThreadPool,
    TimeoutScheduler,
    get_default_executor,
    get_scheduler,
    shutdown_default_executor,
    shutdown_scheduler,
)
from .runtime.observability import configure_logging, get_logger

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Results
    "Result", "DirectResult", "LazyResult", "LazyState", "AsyncResult", "FaultKind",
    "ok", "failure", "failures", "create_checked", "from_supplier", "join", "sequence", "flatten",
    # Failures
    "Failure", "DescriptionFailure", "CodeDescriptionFailure", "ExceptionFailure", "MultipleFailures",
    # Exceptions
    "FallibleError", "InvalidArgumentError", "NoValuePresentError", "FailureException",
    "CompletionError", "SchedulerShutdownError", "MailboxFullError",
    # Cells
    "Mutation", "Agent",
    # Runtime
    "ThreadPool", "get_default_executor", "shutdown_default_executor",
    "TimeoutScheduler", "ScheduledTask", "get_scheduler", "shutdown_scheduler",
    # Configuration & logging
    "FallibleSettings", "get_settings", "clear_settings_cache", "configure_logging", "get_logger",
]
