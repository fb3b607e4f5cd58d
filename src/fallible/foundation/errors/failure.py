"""Failure taxonomy: immutable values describing why an operation produced no result.

Uses Pydantic frozen models so failures are hashable, comparable and validated
on construction. A Failure is data, never a raised exception; ``to_exception``
converts it when a caller needs something to raise or log with a traceback.

Variants:
    DescriptionFailure      human-readable description
    CodeDescriptionFailure  short machine code plus description
    ExceptionFailure        wraps a previously raised exception
    MultipleFailures        ordered, non-empty aggregate of failures
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Iterable
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import FailureException, InvalidArgumentError

# Prefix of the notes attached to an aggregate's primary exception
_SUPPRESSED_NOTE = "suppressed"


class Failure(BaseModel):
    """One reason for non-success. Immutable, never None.

    Subclasses implement ``describe``; ``code`` is only set by coded failures.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
        arbitrary_types_allowed=True,
        revalidate_instances="never",
    )

    code: str | None = Field(default=None, description="Machine-readable failure code")

    def __init__(self, **data: object) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(map(str, err['loc'])) or 'value'}: {err['msg']}" for err in exc.errors()
            )
            raise InvalidArgumentError(f"Invalid {type(self).__name__}: {problems}") from exc

    @classmethod
    def create(cls, value: str | BaseException, description: str | None = None) -> Failure:
        """Build the matching variant for an exception, a description or a code + description.

        Example:
            >>> Failure.create("disk full").describe()
            'disk full'
            >>> Failure.create("E42", "disk full").describe()
            'E42: disk full'
        """
        if isinstance(value, BaseException):
            return ExceptionFailure(value)
        if value is None or not str(value).strip():
            raise InvalidArgumentError("Failure requires a non-empty description or an exception")
        if description is None:
            return DescriptionFailure(value)
        if not description.strip():
            raise InvalidArgumentError("Failure description can not be empty")
        return CodeDescriptionFailure(value, description)

    @abstractmethod
    def describe(self) -> str:
        """Human-readable description."""

    def to_exception(self) -> BaseException:
        """Exception representation, suitable for raising or logging."""
        return FailureException(self)

    def __str__(self) -> str:
        return self.describe()


class DescriptionFailure(Failure):
    """Failure carrying only a description."""

    description: Annotated[str, Field(min_length=1)]

    def __init__(self, description: str, /, **data: object) -> None:
        super().__init__(description=description, **data)

    def describe(self) -> str:
        return self.description


class CodeDescriptionFailure(Failure):
    """Failure with a short code for programmatic handling."""

    code: Annotated[str, Field(min_length=1)]
    description: Annotated[str, Field(min_length=1)]

    def __init__(self, code: str, description: str, /, **data: object) -> None:
        super().__init__(code=code, description=description, **data)

    def describe(self) -> str:
        return f"{self.code}: {self.description}"


class ExceptionFailure(Failure):
    """Failure wrapping an exception raised during a computation.

    ``to_exception`` hands back the very same exception object.
    """

    exception: BaseException

    def __init__(self, exception: BaseException, /, **data: object) -> None:
        super().__init__(exception=exception, **data)

    def describe(self) -> str:
        kind = type(self.exception)
        return f"ExceptionFailure: {kind.__module__}.{kind.__qualname__}: {self.exception}"

    def to_exception(self) -> BaseException:
        return self.exception


class MultipleFailures(Failure):
    """Ordered, non-empty aggregate of failures.

    Example:
        >>> agg = MultipleFailures([DescriptionFailure("a"), DescriptionFailure("b")])
        >>> agg.describe()
        '[a, b]'
    """

    failures: tuple[Failure, ...]

    def __init__(self, failures: Iterable[Failure] | None, /, **data: object) -> None:
        members = tuple(failures) if failures is not None else ()
        if not members:
            raise InvalidArgumentError("MultipleFailures requires at least one failure")
        if any(member is None for member in members):
            raise InvalidArgumentError("MultipleFailures can not contain None")
        super().__init__(failures=members, **data)

    def describe(self) -> str:
        return "[" + ", ".join(member.describe() for member in self.failures) + "]"

    def to_exception(self) -> BaseException:
        """First member's exception, with every other member attached in order.

        The result is a copy of the first member's exception: the remaining
        members' exceptions are kept on its ``suppressed`` tuple and listed as
        ``add_note`` lines. The members' own exceptions are never modified, so
        each call (and each aggregate sharing a member) starts clean.
        """
        primary = self.failures[0].to_exception()
        if len(self.failures) == 1:
            return primary
        rest = tuple(member.to_exception() for member in self.failures[1:])
        detached = _detached(primary)
        detached.suppressed = rest
        for exc in rest:
            detached.add_note(f"{_SUPPRESSED_NOTE}: {type(exc).__name__}: {exc}")
        return detached

    def __len__(self) -> int:
        return len(self.failures)


def _detached(exc: BaseException) -> BaseException:
    """Shallow copy of exc that can take notes without touching the original.

    Built with ``__new__`` so custom ``__init__`` signatures are not replayed.
    """
    kind = type(exc)
    clone = kind.__new__(kind, *exc.args)
    clone.args = exc.args
    clone.__dict__.update(vars(exc))
    for klass in kind.__mro__:
        slots = getattr(klass, "__slots__", ())
        for slot in (slots,) if isinstance(slots, str) else slots:
            if slot not in ("__dict__", "__weakref__") and hasattr(exc, slot):
                setattr(clone, slot, getattr(exc, slot))
    if hasattr(exc, "__notes__"):
        clone.__notes__ = list(exc.__notes__)
    clone.__cause__ = exc.__cause__
    clone.__context__ = exc.__context__
    clone.__suppress_context__ = exc.__suppress_context__
    return clone.with_traceback(exc.__traceback__)
