"""Exception taxonomy for fallible.

Only two kinds of problem surface as raised exceptions:
- Invalid arguments handed to a factory (``InvalidArgumentError``)
- Faults whose kind was not declared as allowed by a checked operation
  (these propagate as the original exception, never wrapped)

Everything else travels inside a Result as a Failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .failure import Failure


class FallibleError(Exception):
    """Root of every exception raised by fallible itself."""


class InvalidArgumentError(FallibleError, ValueError):
    """A factory or combinator received an absent or empty input."""


class NoValuePresentError(FallibleError, LookupError):
    """Raised by get_or_throw() on a failed Result.

    The message embeds the failure description so the reason is visible
    in tracebacks without inspecting the attribute.
    """

    __slots__ = ("failure",)

    def __init__(self, failure: Failure) -> None:
        self.failure = failure
        super().__init__(f"Value not present, failure: {failure.describe()}")


class FailureException(FallibleError):
    """Exception form of a Failure that did not originate from a raised fault."""

    __slots__ = ("failure",)

    def __init__(self, failure: Failure) -> None:
        self.failure = failure
        super().__init__(failure.describe())


class CompletionError(FallibleError):
    """Carries a fault across a future completion boundary.

    The real fault is the ``__cause__``. Instances never reach callers:
    the async bridge strips them before wrapping or re-raising.
    """

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"{type(cause).__name__}: {cause}")
        self.__cause__ = cause


class SchedulerShutdownError(FallibleError, RuntimeError):
    """Timer scheduling attempted after the scheduler was shut down."""


class MailboxFullError(FallibleError, RuntimeError):
    """Agent mailbox reached its configured capacity."""
