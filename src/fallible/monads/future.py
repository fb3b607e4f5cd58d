"""AsyncResult: bridges a concurrent.futures.Future into the Result contract.

The wrapped unit runs on an executor (caller-supplied or the shared pool).
Chaining with ``map``/``flat_map`` never blocks; the first blocking
observation (``result``, ``get_or_throw``, ``has_failure``...) waits for
completion, and the resolved DirectResult is kept by the underlying Future.

Completion is translated at one boundary:
    value            -> ok(value)   (None becomes a failure)
    cancelled        -> ExceptionFailure(CancelledError)
    raised fault     -> unwrapped from CompletionError layers, then
                        ExceptionFailure if it matches ``allowed``,
                        otherwise re-raised unchanged to the observer

Timeouts race the unit against a TimeoutScheduler task; whichever finishes
first decides the outcome and the loser is asked to cancel (best effort).

Example:
    >>> with ThreadPool(4) as pool:
    ...     total = AsyncResult.in_parallel(
    ...         pool.executor,
    ...         lambda a, b: ok(a + b),
    ...         lambda: fetch_count("a"),
    ...         lambda: fetch_count("b"),
    ...         timeout=2.0,
    ...     )
    ...     total.get_or_throw()
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import CancelledError, Executor, Future
from typing import Callable, Coroutine, Sequence, TypeVar, cast

from fallible.foundation.config import get_settings
from fallible.foundation.errors import (
    CompletionError,
    ExceptionFailure,
    Failure,
    InvalidArgumentError,
)
from fallible.runtime.concurrency.interop import submit_coroutine
from fallible.runtime.concurrency.pool import get_default_executor
from fallible.runtime.concurrency.scheduler import TimeoutScheduler, get_scheduler
from fallible.runtime.observability import get_logger

from .result import (
    DirectResult,
    FaultKind,
    Result,
    ensure_result,
    require_callable,
    require_fault_kind,
)

T = TypeVar("T")
U = TypeVar("U")
F = TypeVar("F")
S = TypeVar("S")

logger = get_logger("future")


# ─────────────────────────────────────────────────────────────────────────────
# Completion boundary
# ─────────────────────────────────────────────────────────────────────────────


def _unwrap_completion(exc: BaseException) -> BaseException:
    """Strip CompletionError wrappers down to the fault that was actually raised."""
    while isinstance(exc, CompletionError) and exc.__cause__ is not None:
        exc = exc.__cause__
    return exc


def _translate(done: Future[object], allowed: FaultKind) -> DirectResult[T]:
    """Turn a finished external future into a DirectResult.

    Raises:
        CompletionError: the fault does not match ``allowed``; carries it to the observer
    """
    if done.cancelled():
        return DirectResult(None, ExceptionFailure(CancelledError("Future was cancelled")))
    exc = done.exception()
    if exc is None:
        value = done.result()
        if isinstance(value, Result):
            return cast(DirectResult[T], value.result())
        if value is None:
            return DirectResult(None, ExceptionFailure(InvalidArgumentError("Completion value can not be None")))
        return DirectResult.ok(cast(T, value))
    cause = _unwrap_completion(exc)
    if isinstance(cause, allowed):
        return DirectResult(None, ExceptionFailure(cause))
    raise CompletionError(cause)


class _Settler:
    """Completes a Future at most once; later attempts are ignored.

    Races (timeout vs. completion) are decided by whoever claims first.
    """

    __slots__ = ("future", "_lock", "_claimed")

    def __init__(self) -> None:
        self.future: Future[DirectResult[object]] = Future()
        self.future.set_running_or_notify_cancel()
        self._lock = threading.Lock()
        self._claimed = False

    def _claim(self) -> bool:
        with self._lock:
            if self._claimed:
                return False
            self._claimed = True
            return True

    def set_result(self, outcome: DirectResult[object]) -> bool:
        if not self._claim():
            return False
        self.future.set_result(outcome)
        return True

    def set_exception(self, exc: BaseException) -> bool:
        if not self._claim():
            return False
        self.future.set_exception(exc)
        return True

    def settle(self, compute: Callable[[], DirectResult[object]]) -> bool:
        """Complete with compute()'s outcome; faults are carried as CompletionError."""
        try:
            outcome = compute()
        except CompletionError as exc:
            return self.set_exception(exc)
        except Exception as exc:
            return self.set_exception(CompletionError(exc))
        return self.set_result(outcome)


def _submit(executor: Executor | None, fn: Callable[[], T]) -> Future[T]:
    pool = executor or get_default_executor()
    try:
        return pool.submit(fn)
    except RuntimeError as exc:
        logger.warning("executor rejected async work: %s", exc)
        rejected: Future[T] = Future()
        rejected.set_exception(exc)
        return rejected


def _race(
    settler: _Settler,
    timeout: float | None,
    scheduler: TimeoutScheduler | None,
    losers: Sequence[Future[object]],
    label: str,
) -> None:
    """Race settler against a timer; on timeout fail with TimeoutError and cancel the losers."""
    if timeout is None:
        return
    if timeout <= 0:
        raise InvalidArgumentError(f"timeout must be > 0, got {timeout}")

    def on_timeout() -> None:
        error = TimeoutError(f"{label} timed out after {timeout}s")
        if settler.set_result(DirectResult(None, ExceptionFailure(error))):
            logger.debug("%s timed out after %ss, cancelling %d unit(s)", label, timeout, len(losers))
            for loser in losers:
                loser.cancel()

    task = (scheduler or get_scheduler()).schedule(timeout, on_timeout)
    settler.future.add_done_callback(lambda _: task.cancel())


# ─────────────────────────────────────────────────────────────────────────────
# AsyncResult
# ─────────────────────────────────────────────────────────────────────────────


class AsyncResult(Result[T]):
    """Result backed by a Future of a DirectResult.

    Construct with ``of``, ``create``, ``create_checked``, ``from_coroutine``
    or ``in_parallel``.
    """

    __slots__ = ("_future",)

    def __init__(self, future: Future[DirectResult[T]]) -> None:
        """Private constructor; ``future`` must resolve to a DirectResult."""
        self._future = future

    # ─── Factories ─────────────────────────────────────────────────────

    @classmethod
    def of(
        cls,
        future: Future[T],
        *,
        allowed: FaultKind = Exception,
        timeout: float | None = None,
        scheduler: TimeoutScheduler | None = None,
    ) -> AsyncResult[T]:
        """Wrap an external, already scheduled Future.

        Args:
            future: Handle to the running unit
            allowed: Fault kinds converted to failures; others reach the observer
            timeout: Seconds before the outcome becomes a TimeoutError failure
            scheduler: Timer service for the timeout (shared one by default)
        """
        if future is None:
            raise InvalidArgumentError("future can not be None")
        require_fault_kind(allowed)
        settler = _Settler()
        _race(settler, timeout, scheduler, [future], "AsyncResult")
        future.add_done_callback(lambda done: settler.settle(lambda: _translate(done, allowed)))
        return cls(cast(Future[DirectResult[T]], settler.future))

    @classmethod
    def create(
        cls,
        executor: Executor | None,
        supplier: Callable[[], T],
        *,
        timeout: float | None = None,
        scheduler: TimeoutScheduler | None = None,
    ) -> AsyncResult[T]:
        """Run supplier on the executor; any Exception becomes a failure."""
        require_callable(supplier, "AsyncResult.create")
        return cls.of(_submit(executor, supplier), timeout=timeout, scheduler=scheduler)

    @classmethod
    def create_checked(
        cls,
        executor: Executor | None,
        supplier: Callable[[], T],
        allowed: FaultKind,
        *,
        timeout: float | None = None,
        scheduler: TimeoutScheduler | None = None,
    ) -> AsyncResult[T]:
        """Run supplier on the executor; only faults matching ``allowed`` become failures.

        Any other fault is raised, unchanged, by the first blocking observation.
        """
        require_callable(supplier, "AsyncResult.create_checked")
        require_fault_kind(allowed)
        return cls.of(_submit(executor, supplier), allowed=allowed, timeout=timeout, scheduler=scheduler)

    @classmethod
    def from_coroutine(
        cls,
        coro: Coroutine[object, object, T],
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        executor: Executor | None = None,
        timeout: float | None = None,
        scheduler: TimeoutScheduler | None = None,
    ) -> AsyncResult[T]:
        """Run an asyncio coroutine on ``loop`` (another thread's) or on a pool thread."""
        if coro is None:
            raise InvalidArgumentError("coroutine can not be None")
        future = submit_coroutine(coro, loop=loop, executor=executor)
        return cls.of(future, timeout=timeout, scheduler=scheduler)

    @classmethod
    def in_parallel(
        cls,
        executor: Executor | None,
        combiner: Callable[[F, S], Result[T]],
        first: Callable[[], F],
        second: Callable[[], S],
        timeout: float | None = None,
        *,
        scheduler: TimeoutScheduler | None = None,
    ) -> AsyncResult[T]:
        """Run two producers in parallel and combine their values.

        Failures from both producers are aggregated. If the pair does not
        finish within ``timeout`` seconds (default ``TimeoutSettings.parallel``)
        the outcome is a TimeoutError failure and both producers are asked to
        cancel; a producer already running still runs to completion.
        """
        require_callable(combiner, "AsyncResult.in_parallel")
        require_callable(first, "AsyncResult.in_parallel")
        require_callable(second, "AsyncResult.in_parallel")
        limit = get_settings().timeout.parallel if timeout is None else timeout
        if limit <= 0:
            raise InvalidArgumentError(f"timeout must be > 0, got {limit}")

        settler = _Settler()
        units = [_submit(executor, first), _submit(executor, second)]
        _race(settler, limit, scheduler, units, "AsyncResult in_parallel")

        remaining = [len(units)]
        lock = threading.Lock()

        def combine() -> DirectResult[T]:
            parts = [_translate(unit, Exception) for unit in units]
            failed = [cast(Failure, part.get_failure()) for part in parts if part.has_failure()]
            if failed:
                return DirectResult.failures(failed)
            a, b = (part.get_or_throw() for part in parts)
            return ensure_result(combiner(a, b), "in_parallel combiner").result()

        def on_done(_: Future[object]) -> None:
            with lock:
                remaining[0] -= 1
                if remaining[0]:
                    return
            settler.settle(lambda: _catching(combine))

        for unit in units:
            unit.add_done_callback(on_done)
        return cls(cast(Future[DirectResult[T]], settler.future))

    # ─── Resolution ─────────────────────────────────────────────────────

    def result(self) -> DirectResult[T]:
        """Block until complete and return the cached DirectResult.

        Raises:
            BaseException: a fault that was not an allowed kind, unchanged
        """
        try:
            return self._future.result()
        except CompletionError as exc:
            passthrough = _unwrap_completion(exc)
        raise passthrough

    def is_done(self) -> bool:
        """Non-blocking completion check."""
        return self._future.done()

    # ─── Chaining (non-blocking) ────────────────────────────────────────

    def map(self, f: Callable[[T], U], *, allowed: FaultKind | None = None) -> AsyncResult[U]:
        require_callable(f, "AsyncResult.map")
        if allowed is not None:
            require_fault_kind(allowed)
        return self._then(lambda resolved: resolved.map(f, allowed=allowed))

    def flat_map(self, f: Callable[[T], Result[U]], *, allowed: FaultKind | None = None) -> AsyncResult[U]:
        require_callable(f, "AsyncResult.flat_map")
        if allowed is not None:
            require_fault_kind(allowed)
        return self._then(lambda resolved: resolved.flat_map(f, allowed=allowed))

    def _then(self, step: Callable[[DirectResult[T]], Result[U]]) -> AsyncResult[U]:
        settler = _Settler()

        def on_done(done: Future[DirectResult[T]]) -> None:
            settler.settle(lambda: ensure_result(step(done.result()), "AsyncResult").result())

        self._future.add_done_callback(on_done)
        return AsyncResult(cast(Future[DirectResult[U]], settler.future))

    # ─── Callbacks (non-blocking) ───────────────────────────────────────

    def on_success(self, consumer: Callable[[T], object]) -> AsyncResult[T]:
        """Call consumer with the value once completed successfully. Returns self.

        Runs on the completing thread (or immediately if already done). An
        exception raised by consumer is logged, not propagated.
        """
        def on_done(done: Future[DirectResult[T]]) -> None:
            if done.exception() is None:
                done.result().on_success(consumer)

        self._future.add_done_callback(on_done)
        return self

    def on_failure(self, consumer: Callable[[Failure], object]) -> AsyncResult[T]:
        """Call consumer with the failure once completed with one. Returns self.

        A fault that was not an allowed kind is reported too, as an
        ExceptionFailure of the original exception. An exception raised by
        consumer is logged, not propagated.
        """
        def on_done(done: Future[DirectResult[T]]) -> None:
            exc = done.exception()
            if exc is not None:
                consumer(ExceptionFailure(_unwrap_completion(exc)))
            else:
                done.result().on_failure(consumer)

        self._future.add_done_callback(on_done)
        return self

    def __repr__(self) -> str:
        if not self._future.done():
            return "AsyncResult(PENDING)"
        if self._future.exception() is not None:
            return f"AsyncResult(RAISED): {_unwrap_completion(cast(BaseException, self._future.exception()))!r}"
        return f"AsyncResult(DONE): {self._future.result()!r}"


def _catching(compute: Callable[[], DirectResult[T]]) -> DirectResult[T]:
    """Run compute, converting any Exception into an ExceptionFailure."""
    try:
        return compute()
    except Exception as exc:
        return DirectResult(None, ExceptionFailure(_unwrap_completion(exc)))
