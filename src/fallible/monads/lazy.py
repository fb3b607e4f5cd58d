"""LazyResult: a deferred computation graph that runs at most once.

Nothing executes when a LazyResult is created or chained. ``map`` and
``flat_map`` only build new nodes pointing at their parent. The first
``start()`` or ``result()`` forces the node (parents first), and the outcome
is cached: later observations return the same Result instance without
re-running anything.

States:
    UNFORCED  graph built, nothing executed
    FORCING   exactly one thread is executing the node
    FORCED    cached Result available

Any Exception raised by a producer or chained function, including
RecursionError, is captured as an ExceptionFailure when the node is forced.

Example:
    >>> lazy = LazyResult.create(lambda: "hello").map(str.upper)
    >>> lazy.result().get_or_throw()      # runs now, in this thread
    'HELLO'
    >>> future = other.start()            # runs on the shared pool
    >>> future.result().get_or_throw()
"""

from __future__ import annotations

import threading
from concurrent.futures import Executor, Future
from enum import StrEnum
from typing import Callable, Iterable, TypeVar, cast

from fallible.foundation.errors import ExceptionFailure, Failure
from fallible.runtime.concurrency.pool import get_default_executor
from fallible.runtime.observability import get_logger

from .result import (
    DirectResult,
    FaultKind,
    Result,
    as_failure,
    ensure_result,
    require_callable,
    require_fault_kind,
)

T = TypeVar("T")
U = TypeVar("U")

logger = get_logger("lazy")


class LazyState(StrEnum):
    """Execution state of a lazy node."""
    UNFORCED = "unforced"
    FORCING = "forcing"
    FORCED = "forced"


class LazyResult(Result[T]):
    """Deferred Result, forced once and memoized.

    The node owns a thunk producing a Result and a Future that is completed
    exactly once with the outcome. ``start()`` hands out that Future;
    ``result()`` waits on it. Whoever claims the node first runs the thunk.
    """

    __slots__ = ("_thunk", "_state", "_lock", "_outcome")

    def __init__(self, thunk: Callable[[], Result[T]]) -> None:
        """Private constructor. Use create/failure/failures or chain from a node."""
        self._thunk: Callable[[], Result[T]] | None = thunk
        self._state = LazyState.UNFORCED
        self._lock = threading.Lock()
        self._outcome: Future[DirectResult[T]] = Future()

    # ─────────────────────────────────────────────────────────────────
    # Factories
    # ─────────────────────────────────────────────────────────────────

    @classmethod
    def create(cls, producer: Callable[[], T]) -> LazyResult[T]:
        """Leaf node evaluating ``producer()`` when forced.

        A None produced value is recorded as a failure.
        """
        require_callable(producer, "LazyResult.create")
        return cls(lambda: DirectResult.ok(producer()))

    @classmethod
    def failure(cls, failure: Failure | str | BaseException) -> LazyResult[T]:
        """Already-forced node holding a failure. Never schedules execution."""
        return cls._forced(DirectResult(None, as_failure(failure)))

    @classmethod
    def failures(cls, failures: Iterable[Failure] | None) -> LazyResult[T]:
        """Already-forced node holding a (possibly aggregated) failure."""
        return cls._forced(DirectResult.failures(failures))

    @classmethod
    def _forced(cls, outcome: DirectResult[T]) -> LazyResult[T]:
        node = cls.__new__(cls)
        node._thunk = None
        node._state = LazyState.FORCED
        node._lock = threading.Lock()
        node._outcome = Future()
        node._outcome.set_running_or_notify_cancel()
        node._outcome.set_result(outcome)
        return node

    # ─────────────────────────────────────────────────────────────────
    # Chaining (never executes anything)
    # ─────────────────────────────────────────────────────────────────

    def map(self, f: Callable[[T], U], *, allowed: FaultKind | None = None) -> LazyResult[U]:
        """New node applying f to this node's value once forced.

        A failed parent propagates its failure and f is never called.
        ``allowed`` is validated but does not filter anything here: forcing
        captures every Exception as a failure, matching kind or not.
        """
        require_callable(f, "LazyResult.map")
        if allowed is not None:
            require_fault_kind(allowed)
        return LazyResult(lambda: self.result().map(f, allowed=allowed))

    def flat_map(self, f: Callable[[T], Result[U]], *, allowed: FaultKind | None = None) -> LazyResult[U]:
        """New node whose value comes from the Result f returns.

        The inner Result (lazy, async or direct) is forced too, and its
        failure becomes this node's failure without nesting.
        As with ``map``, ``allowed`` has no effect on a deferred node.
        """
        require_callable(f, "LazyResult.flat_map")
        if allowed is not None:
            require_fault_kind(allowed)
        return LazyResult(lambda: self.result().flat_map(f, allowed=allowed))

    # ─────────────────────────────────────────────────────────────────
    # Forcing
    # ─────────────────────────────────────────────────────────────────

    @property
    def state(self) -> LazyState:
        return self._state

    def is_forced(self) -> bool:
        return self._state is LazyState.FORCED

    def start(self, executor: Executor | None = None) -> Future[DirectResult[T]]:
        """Begin execution in the background if nobody has yet.

        Idempotent and thread-safe: every call returns the same Future, and
        the chain runs once no matter how many callers start or force it.

        Args:
            executor: Where to run; defaults to the shared pool
        """
        if self._claim():
            pool = executor or get_default_executor()
            try:
                pool.submit(self._execute)
            except RuntimeError as exc:
                logger.warning("executor rejected lazy node: %s", exc)
                self._complete(DirectResult(None, ExceptionFailure(exc)))
            else:
                logger.debug("lazy node submitted to %s", type(pool).__name__)
        return self._outcome

    def result(self) -> DirectResult[T]:
        """Force in the calling thread (or wait for the thread already forcing) and return the cached Result."""
        if self._claim():
            self._execute()
        return self._outcome.result()

    def _claim(self) -> bool:
        with self._lock:
            if self._state is not LazyState.UNFORCED:
                return False
            self._state = LazyState.FORCING
            self._outcome.set_running_or_notify_cancel()
            return True

    def _execute(self) -> None:
        thunk = cast(Callable[[], Result[T]], self._thunk)
        try:
            outcome = ensure_result(thunk(), "LazyResult").result()
        except Exception as exc:
            logger.debug("lazy node failed while forcing: %r", exc)
            outcome = DirectResult(None, ExceptionFailure(exc))
        except BaseException as exc:
            # KeyboardInterrupt and friends: release waiters, then let it unwind
            with self._lock:
                self._state = LazyState.FORCED
            self._outcome.set_exception(exc)
            raise
        self._complete(outcome)

    def _complete(self, outcome: DirectResult[T]) -> None:
        with self._lock:
            self._state = LazyState.FORCED
            # Drop the graph so forced chains do not pin their parents
            self._thunk = None
        self._outcome.set_result(outcome)

    # ─────────────────────────────────────────────────────────────────
    # Observation: force, then delegate to the cached Result
    # ─────────────────────────────────────────────────────────────────

    def on_success(self, consumer: Callable[[T], object]) -> LazyResult[T]:
        self.result().on_success(consumer)
        return self

    def on_failure(self, consumer: Callable[[Failure], object]) -> LazyResult[T]:
        self.result().on_failure(consumer)
        return self

    def __repr__(self) -> str:
        if self._state is LazyState.FORCED:
            return f"LazyResult(FORCED): {self._outcome.result()!r}"
        return f"LazyResult({self._state.name})"
