"""Result type: a success value or one-or-more failures.

Result is the contract shared by every execution style:
- DirectResult: eager, already computed (this module)
- LazyResult: deferred graph, forced once (monads/lazy.py)
- AsyncResult: backed by a concurrent.futures.Future (monads/future.py)

Failures are values (see ``fallible.foundation.errors.failure``). Exceptions
are only raised for invalid arguments and for faults a checked operation
did not declare as allowed.

Example:
    >>> from fallible import ok, failure
    >>> ok(5).map(lambda x: x * 2).get_or_throw()
    10
    >>> failure("no user").map(lambda x: x * 2).has_failure()
    True
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import TYPE_CHECKING, Callable, Generic, TypeAlias, TypeVar, cast

from fallible.foundation.errors import (
    ExceptionFailure,
    Failure,
    InvalidArgumentError,
    MultipleFailures,
    NoValuePresentError,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

T = TypeVar("T")  # Success type
U = TypeVar("U")  # Mapped success type

# Exception class (or tuple of classes) a checked operation converts into a failure
FaultKind: TypeAlias = "type[BaseException] | tuple[type[BaseException], ...]"


def require_callable(fn: object, operation: str) -> None:
    """Raise InvalidArgumentError unless fn is callable."""
    if fn is None or not callable(fn):
        raise InvalidArgumentError(f"{fn!r} is not a valid function for {operation}")


def require_fault_kind(allowed: object) -> None:
    """Raise InvalidArgumentError unless allowed is an exception class or a tuple of them."""
    kinds = allowed if isinstance(allowed, tuple) else (allowed,)
    if not kinds or not all(isinstance(k, type) and issubclass(k, BaseException) for k in kinds):
        raise InvalidArgumentError(f"{allowed!r} is not an exception class or tuple of exception classes")


def as_failure(value: Failure | str | BaseException) -> Failure:
    """Coerce a Failure, a description or an exception into a Failure."""
    if isinstance(value, Failure):
        return value
    if value is None:
        raise InvalidArgumentError("Failure can not be None")
    return Failure.create(value)


class Result(ABC, Generic[T]):
    """Success (a non-None value) or failure (one Failure, possibly an aggregate).

    Implementations share every observation through ``result()``, which
    returns the resolved DirectResult (forcing or waiting when needed).
    ``map``/``flat_map`` return new Results; on the failure path the
    receiver itself is returned and the function is never called.
    """

    __slots__ = ()

    # ─────────────────────────────────────────────────────────────────
    # Resolution
    # ─────────────────────────────────────────────────────────────────

    @abstractmethod
    def result(self) -> DirectResult[T]:
        """The resolved outcome. Blocks for deferred or future-backed results."""

    # ─────────────────────────────────────────────────────────────────
    # Chaining
    # ─────────────────────────────────────────────────────────────────

    @abstractmethod
    def map(self, f: Callable[[T], U], *, allowed: FaultKind | None = None) -> Result[U]:
        """Apply f to a success value.

        Without ``allowed`` faults raised by f propagate. With ``allowed``,
        matching faults become an ExceptionFailure and others propagate.
        """

    @abstractmethod
    def flat_map(self, f: Callable[[T], Result[U]], *, allowed: FaultKind | None = None) -> Result[U]:
        """Apply a Result-returning f to a success value, without nesting."""

    # ─────────────────────────────────────────────────────────────────
    # Inspection
    # ─────────────────────────────────────────────────────────────────

    def has_failure(self) -> bool:
        return self.result().has_failure()

    def is_ok(self) -> bool:
        return not self.has_failure()

    def get_failure(self) -> Failure | None:
        """The failure, or None on success."""
        return self.result().get_failure()

    def value(self) -> T | None:
        """The success value, or None on failure."""
        return self.result().value()

    def get_or_throw(self) -> T:
        """Success value. Raises NoValuePresentError on failure.

        Prefer ``or_else``/chaining; this is the escape hatch.
        """
        return self.result().get_or_throw()

    def or_else(self, fn: Callable[[Result[T]], T]) -> T:
        """Success value, or ``fn(self)`` on failure."""
        resolved = self.result()
        return cast(T, resolved.value()) if not resolved.has_failure() else fn(self)

    def or_else_get(self, supplier: Callable[[], T]) -> T:
        """Success value, or ``supplier()`` on failure."""
        resolved = self.result()
        return cast(T, resolved.value()) if not resolved.has_failure() else supplier()

    def on_success(self, consumer: Callable[[T], object]) -> Result[T]:
        """Call consumer with the value when successful. Returns self."""
        self.result().on_success(consumer)
        return self

    def on_failure(self, consumer: Callable[[Failure], object]) -> Result[T]:
        """Call consumer with the failure when failed. Returns self."""
        self.result().on_failure(consumer)
        return self

    def match(self, *, ok: Callable[[T], U], failure: Callable[[Failure], U]) -> U:
        """Exhaustive case analysis.

        Example:
            >>> ok(42).match(ok=lambda v: f"got {v}", failure=lambda f: f"failed: {f}")
            'got 42'
        """
        resolved = self.result()
        if resolved.has_failure():
            return failure(cast(Failure, resolved.get_failure()))
        return ok(cast(T, resolved.value()))

    def __bool__(self) -> bool:
        """Truthy on success."""
        return not self.has_failure()


class DirectResult(Result[T]):
    """Eager Result: value or failure fixed at construction.

    All operations are synchronous and never block. Construct through
    ``ok``/``failure``/``failures``/``create_checked``, not the constructor.
    """

    __slots__ = ("_value", "_failure")
    __match_args__ = ("_value", "_failure")

    def __init__(self, value: T | None, failure: Failure | None) -> None:
        """Private constructor."""
        self._value = value
        self._failure = failure

    # ─── Factories ─────────────────────────────────────────────────────

    @classmethod
    def ok(cls, value: T) -> DirectResult[T]:
        """Success result. Raises InvalidArgumentError on None."""
        if value is None:
            raise InvalidArgumentError("Value can not be None")
        return cls(value, None)

    @classmethod
    def failure(cls, failure: Failure | str | BaseException) -> DirectResult[T]:
        """Failed result from a Failure, a description or an exception."""
        return cls(None, as_failure(failure))

    @classmethod
    def failures(cls, failures: Iterable[Failure] | None) -> DirectResult[T]:
        """Failed result from a non-empty list; several failures are aggregated."""
        members = list(failures) if failures is not None else []
        if not members:
            raise InvalidArgumentError("Failures list can not be empty")
        if len(members) == 1:
            return cls.failure(members[0])
        return cls(None, MultipleFailures(members))

    @classmethod
    def create_checked(cls, supplier: Callable[[], T], allowed: FaultKind) -> DirectResult[T]:
        """Run supplier now. Faults matching ``allowed`` become failures, others propagate."""
        require_callable(supplier, "create_checked")
        require_fault_kind(allowed)
        try:
            value = supplier()
        except allowed as exc:
            return cls(None, ExceptionFailure(exc))
        return cls.ok(value)

    # ─── Resolution ─────────────────────────────────────────────────────

    def result(self) -> DirectResult[T]:
        return self

    # ─── Chaining ───────────────────────────────────────────────────────

    def map(self, f: Callable[[T], U], *, allowed: FaultKind | None = None) -> Result[U]:
        require_callable(f, "map")
        if self._failure is not None:
            return cast(Result[U], self)
        if allowed is None:
            return DirectResult.ok(f(cast(T, self._value)))
        return DirectResult.create_checked(lambda: f(cast(T, self._value)), allowed)

    def flat_map(self, f: Callable[[T], Result[U]], *, allowed: FaultKind | None = None) -> Result[U]:
        require_callable(f, "flat_map")
        if self._failure is not None:
            return cast(Result[U], self)
        if allowed is None:
            return ensure_result(f(cast(T, self._value)), "flat_map")
        require_fault_kind(allowed)
        try:
            produced = f(cast(T, self._value))
        except allowed as exc:
            return DirectResult(None, ExceptionFailure(exc))
        return ensure_result(produced, "flat_map")

    # ─── Inspection ─────────────────────────────────────────────────────

    def has_failure(self) -> bool:
        return self._failure is not None

    def get_failure(self) -> Failure | None:
        return self._failure

    def value(self) -> T | None:
        return self._value

    def get_or_throw(self) -> T:
        if self._failure is not None:
            raise NoValuePresentError(self._failure)
        return cast(T, self._value)

    def on_success(self, consumer: Callable[[T], object]) -> DirectResult[T]:
        if self._failure is None:
            consumer(cast(T, self._value))
        return self

    def on_failure(self, consumer: Callable[[Failure], object]) -> DirectResult[T]:
        if self._failure is not None:
            consumer(self._failure)
        return self

    # ─── Dunder Methods ─────────────────────────────────────────────────

    def __repr__(self) -> str:
        if self._failure is not None:
            return f"DirectResult(FAILURE): {self._failure.describe()}"
        return f"DirectResult(OK): {self._value!r}"

    def __eq__(self, other: object) -> bool:
        """Structural equality."""
        if not isinstance(other, DirectResult):
            return NotImplemented
        return self._value == other._value and self._failure == other._failure

    def __hash__(self) -> int:
        return hash((self._value, self._failure))

    def __iter__(self) -> Iterator[T]:
        """Yield the value once on success, nothing on failure."""
        if self._failure is None:
            yield cast(T, self._value)


def ensure_result(produced: object, operation: str) -> Result[U]:
    """Guard for functions that must return a Result."""
    if not isinstance(produced, Result):
        raise TypeError(f"{operation} function must return a Result, got {type(produced).__name__}")
    return produced


# ═════════════════════════════════════════════════════════════════════════════
# Constructor Functions
# ═════════════════════════════════════════════════════════════════════════════


def ok(value: T) -> DirectResult[T]:
    """Success result. Raises InvalidArgumentError on None."""
    return DirectResult.ok(value)


def failure(value: Failure | str | BaseException) -> DirectResult[T]:
    """Failed result from a Failure, a description or an exception."""
    return DirectResult.failure(value)


def failures(values: Iterable[Failure] | None) -> DirectResult[T]:
    """Failed result from a non-empty list of failures.

    Example:
        >>> failures([Failure.create("a"), Failure.create("b")]).get_failure().describe()
        '[a, b]'
    """
    return DirectResult.failures(values)


def create_checked(supplier: Callable[[], T], allowed: FaultKind) -> DirectResult[T]:
    """Run supplier; only faults matching ``allowed`` become failures."""
    return DirectResult.create_checked(supplier, allowed)


def from_supplier(supplier: Callable[[], T]) -> DirectResult[T]:
    """Run supplier; any Exception (including a None value) becomes a failure."""
    require_callable(supplier, "from_supplier")
    try:
        return DirectResult.ok(supplier())
    except Exception as exc:
        return DirectResult(None, ExceptionFailure(exc))


# ═════════════════════════════════════════════════════════════════════════════
# Collection Operations
# ═════════════════════════════════════════════════════════════════════════════


def join(combiner: Callable[[list[T]], U], *results: Result[T]) -> DirectResult[U]:
    """Combine several Results.

    Every result is resolved. If all succeeded, ``combiner`` receives the
    values in order. Otherwise the failures of *every* failed input are
    returned, in input order (aggregated when there are several).

    Example:
        >>> join(sum, ok(5), ok(4), ok(3)).get_or_throw()
        12
    """
    require_callable(combiner, "join")
    resolved = [r.result() for r in results]
    collected = [cast(Failure, r.get_failure()) for r in resolved if r.has_failure()]
    if collected:
        return DirectResult.failures(collected)
    return DirectResult.ok(combiner([cast(T, r.value()) for r in resolved]))


def sequence(results: Iterable[Result[T]]) -> DirectResult[list[T]]:
    """Convert a list of Results into a Result of the list of values.

    Collects all failures, like ``join``.
    """
    return join(list, *results)


def flatten(nested: Result[Result[T]]) -> Result[T]:
    """Collapse a Result whose success value is itself a Result.

    Example:
        >>> flatten(ok(ok(1))).get_or_throw()
        1
    """
    return nested.result().flat_map(lambda inner: ensure_result(inner, "flatten").result())
