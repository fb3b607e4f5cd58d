"""Tests for AsyncResult.

Validates:
- Completion translation (value, fault, cancellation, None)
- Checked creation: allowed faults become failures, others reach the observer
- Non-blocking map/flat_map/callbacks
- in_parallel aggregation and timeouts
- Coroutine bridging
"""

from __future__ import annotations

import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor

import pytest

from fallible import (
    AsyncResult,
    CompletionError,
    DescriptionFailure,
    Failure,
    InvalidArgumentError,
    LazyResult,
    MultipleFailures,
    TimeoutScheduler,
    clear_settings_cache,
    failure,
    ok,
)


def _raise(error: BaseException) -> object:
    raise error


# ═════════════════════════════════════════════════════════════════════════════
# Creation
# ═════════════════════════════════════════════════════════════════════════════


def test_create_success(executor: ThreadPoolExecutor) -> None:
    assert AsyncResult.create(executor, lambda: 5).get_or_throw() == 5


def test_create_on_default_executor() -> None:
    assert AsyncResult.create(None, lambda: "shared").get_or_throw() == "shared"


def test_create_captures_any_fault(executor: ThreadPoolExecutor) -> None:
    error = KeyError("k")
    result = AsyncResult.create(executor, lambda: _raise(error))
    assert result.get_failure().to_exception() is error


def test_create_none_value_is_failure(executor: ThreadPoolExecutor) -> None:
    result = AsyncResult.create(executor, lambda: None)
    assert isinstance(result.get_failure().to_exception(), InvalidArgumentError)


def test_create_rejects_missing_supplier(executor: ThreadPoolExecutor) -> None:
    with pytest.raises(InvalidArgumentError):
        AsyncResult.create(executor, None)  # type: ignore[arg-type]


def test_create_checked_allowed(executor: ThreadPoolExecutor) -> None:
    result = AsyncResult.create_checked(executor, lambda: int("x"), ValueError)
    assert isinstance(result.get_failure().to_exception(), ValueError)


def test_create_checked_passes_other_faults_through(executor: ThreadPoolExecutor) -> None:
    """A fault that is not allowed is raised unchanged by the observer."""
    error = KeyError("unexpected")
    result = AsyncResult.create_checked(executor, lambda: _raise(error), ValueError)

    with pytest.raises(KeyError) as info:
        result.result()
    assert info.value is error


def test_result_is_memoized(executor: ThreadPoolExecutor) -> None:
    result = AsyncResult.create(executor, lambda: 1)
    assert result.result() is result.result()


# ═════════════════════════════════════════════════════════════════════════════
# Wrapping External Futures
# ═════════════════════════════════════════════════════════════════════════════


def test_of_completed_value() -> None:
    future: Future[int] = Future()
    future.set_result(3)
    assert AsyncResult.of(future).get_or_throw() == 3


def test_of_cancelled_future() -> None:
    future: Future[int] = Future()
    future.cancel()
    assert isinstance(AsyncResult.of(future).get_failure().to_exception(), CancelledError)


def test_of_unwraps_completion_layers() -> None:
    error = ValueError("deep")
    future: Future[int] = Future()
    future.set_exception(CompletionError(CompletionError(error)))
    assert AsyncResult.of(future).get_failure().to_exception() is error


def test_of_flattens_result_values() -> None:
    future: Future[object] = Future()
    future.set_result(failure("inner"))
    assert AsyncResult.of(future).get_failure().describe() == "inner"


def test_of_rejects_none() -> None:
    with pytest.raises(InvalidArgumentError):
        AsyncResult.of(None)  # type: ignore[arg-type]


# ═════════════════════════════════════════════════════════════════════════════
# Chaining
# ═════════════════════════════════════════════════════════════════════════════


def test_map_does_not_block() -> None:
    future: Future[int] = Future()
    mapped = AsyncResult.of(future).map(lambda x: x + 1)
    assert not mapped.is_done()

    future.set_result(1)
    assert mapped.get_or_throw() == 2


def test_map_chain(executor: ThreadPoolExecutor) -> None:
    result = AsyncResult.create(executor, lambda: 2).map(lambda x: x * 3).map(str)
    assert result.get_or_throw() == "6"


def test_map_skipped_after_failure(executor: ThreadPoolExecutor) -> None:
    calls: list[int] = []
    result = AsyncResult.create(executor, lambda: _raise(ValueError("x"))).map(calls.append)
    assert result.has_failure()
    assert calls == []


def test_map_fault_reaches_observer(executor: ThreadPoolExecutor) -> None:
    result = AsyncResult.create(executor, lambda: 1).map(lambda x: x / 0)
    with pytest.raises(ZeroDivisionError):
        result.get_or_throw()


def test_map_allowed_fault_becomes_failure(executor: ThreadPoolExecutor) -> None:
    result = AsyncResult.create(executor, lambda: 1).map(lambda x: x / 0, allowed=ZeroDivisionError)
    assert isinstance(result.get_failure().to_exception(), ZeroDivisionError)


def test_flat_map_with_lazy_inner(executor: ThreadPoolExecutor) -> None:
    result = AsyncResult.create(executor, lambda: 2).flat_map(lambda x: LazyResult.create(lambda: x + 1))
    assert result.get_or_throw() == 3


def test_flat_map_inner_failure(executor: ThreadPoolExecutor) -> None:
    inner = DescriptionFailure("inner")
    result = AsyncResult.create(executor, lambda: 2).flat_map(lambda _: failure(inner))
    assert result.get_failure() is inner


# ═════════════════════════════════════════════════════════════════════════════
# Callbacks
# ═════════════════════════════════════════════════════════════════════════════


def test_on_success_callback() -> None:
    future: Future[int] = Future()
    seen: list[int] = []
    called = threading.Event()

    result = AsyncResult.of(future)
    returned = result.on_success(lambda v: (seen.append(v), called.set()))
    assert returned is result
    assert not called.is_set()

    future.set_result(9)
    assert called.wait(5)
    assert seen == [9]


def test_on_failure_callback(executor: ThreadPoolExecutor) -> None:
    seen: list[Failure] = []
    called = threading.Event()

    AsyncResult.create(executor, lambda: _raise(ValueError("x"))).on_failure(
        lambda f: (seen.append(f), called.set())
    ).on_success(lambda v: seen.append(v))

    assert called.wait(5)
    assert isinstance(seen[0].to_exception(), ValueError)
    assert len(seen) == 1


def test_on_failure_reports_fault_that_was_not_allowed(executor: ThreadPoolExecutor) -> None:
    """A pass-through fault still reaches on_failure, as the original exception."""
    error = KeyError("k")
    seen: list[Failure] = []
    called = threading.Event()

    result = AsyncResult.create_checked(executor, lambda: _raise(error), ValueError)
    result.on_failure(lambda f: (seen.append(f), called.set()))

    assert called.wait(5)
    assert seen[0].to_exception() is error
    with pytest.raises(KeyError):
        result.result()


def test_on_success_skipped_for_fault_that_was_not_allowed() -> None:
    future: Future[int] = Future()
    seen: list[int] = []
    result = AsyncResult.of(future, allowed=ValueError).on_success(seen.append)

    future.set_exception(KeyError("k"))

    with pytest.raises(KeyError):
        result.result()
    assert seen == []


def test_consumer_fault_is_not_propagated() -> None:
    """A raising consumer is logged by the future machinery; later callbacks still run."""
    future: Future[int] = Future()
    called = threading.Event()

    def explode(_: int) -> None:
        raise RuntimeError("consumer bug")

    result = AsyncResult.of(future).on_success(explode).on_success(lambda _: called.set())
    future.set_result(1)

    assert called.wait(5)
    assert result.get_or_throw() == 1


# ═════════════════════════════════════════════════════════════════════════════
# Timeouts
# ═════════════════════════════════════════════════════════════════════════════


def test_create_with_timeout(executor: ThreadPoolExecutor, scheduler: TimeoutScheduler) -> None:
    release = threading.Event()
    try:
        result = AsyncResult.create(executor, lambda: release.wait(5), timeout=0.05, scheduler=scheduler)
        failure_ = result.get_failure()
        assert isinstance(failure_.to_exception(), TimeoutError)
        assert "timed out" in failure_.describe()
    finally:
        release.set()


def test_timeout_not_triggered_when_fast(executor: ThreadPoolExecutor, scheduler: TimeoutScheduler) -> None:
    result = AsyncResult.create(executor, lambda: 1, timeout=5, scheduler=scheduler)
    assert result.get_or_throw() == 1


def test_timeout_must_be_positive(executor: ThreadPoolExecutor) -> None:
    with pytest.raises(InvalidArgumentError):
        AsyncResult.create(executor, lambda: 1, timeout=0)


# ═════════════════════════════════════════════════════════════════════════════
# in_parallel
# ═════════════════════════════════════════════════════════════════════════════


def test_in_parallel_combines(executor: ThreadPoolExecutor, scheduler: TimeoutScheduler) -> None:
    result = AsyncResult.in_parallel(
        executor, lambda a, b: ok(a + b), lambda: 2, lambda: 3, scheduler=scheduler,
    )
    assert result.get_or_throw() == 5


def test_in_parallel_runs_concurrently(executor: ThreadPoolExecutor, scheduler: TimeoutScheduler) -> None:
    """Each producer waits for the other, so a serial run would time out."""
    barrier = threading.Barrier(2)

    def meet(value: int) -> int:
        barrier.wait(5)
        return value

    result = AsyncResult.in_parallel(
        executor, lambda a, b: ok([a, b]), lambda: meet(1), lambda: meet(2), 5, scheduler=scheduler,
    )
    assert result.get_or_throw() == [1, 2]


def test_in_parallel_aggregates_failures(executor: ThreadPoolExecutor, scheduler: TimeoutScheduler) -> None:
    result = AsyncResult.in_parallel(
        executor,
        lambda a, b: ok(a + b),
        lambda: _raise(ValueError("first")),
        lambda: _raise(KeyError("second")),
        scheduler=scheduler,
    )
    aggregate = result.get_failure()
    assert isinstance(aggregate, MultipleFailures)
    assert [type(f.to_exception()) for f in aggregate.failures] == [ValueError, KeyError]


def test_in_parallel_single_failure(executor: ThreadPoolExecutor, scheduler: TimeoutScheduler) -> None:
    result = AsyncResult.in_parallel(
        executor, lambda a, b: ok(a + b), lambda: 1, lambda: _raise(ValueError("x")), scheduler=scheduler,
    )
    assert isinstance(result.get_failure().to_exception(), ValueError)


def test_in_parallel_combiner_failure(executor: ThreadPoolExecutor, scheduler: TimeoutScheduler) -> None:
    result = AsyncResult.in_parallel(
        executor, lambda a, b: failure("nope"), lambda: 1, lambda: 2, scheduler=scheduler,
    )
    assert result.get_failure().describe() == "nope"


def test_in_parallel_combiner_fault_is_captured(executor: ThreadPoolExecutor, scheduler: TimeoutScheduler) -> None:
    result = AsyncResult.in_parallel(
        executor, lambda a, b: ok(a / b), lambda: 1, lambda: 0, scheduler=scheduler,
    )
    assert isinstance(result.get_failure().to_exception(), ZeroDivisionError)


def test_in_parallel_timeout(executor: ThreadPoolExecutor, scheduler: TimeoutScheduler) -> None:
    release = threading.Event()
    try:
        result = AsyncResult.in_parallel(
            executor,
            lambda a, b: ok(a),
            lambda: release.wait(5),
            lambda: 1,
            0.05,
            scheduler=scheduler,
        )
        described = result.get_failure().describe()
        assert "TimeoutError" in described
        assert "timed out" in described
    finally:
        release.set()


def test_in_parallel_timeout_cancels_queued_producer(scheduler: TimeoutScheduler) -> None:
    """A producer that has not started yet never runs after the timeout."""
    release = threading.Event()
    second_ran = threading.Event()
    pool = ThreadPoolExecutor(max_workers=1)
    try:
        result = AsyncResult.in_parallel(
            pool,
            lambda a, b: ok(a),
            lambda: release.wait(5),
            second_ran.set,
            0.05,
            scheduler=scheduler,
        )
        assert isinstance(result.get_failure().to_exception(), TimeoutError)
    finally:
        release.set()
        pool.shutdown(wait=True)
    assert not second_ran.is_set()


def test_in_parallel_default_timeout_from_settings(
    executor: ThreadPoolExecutor, scheduler: TimeoutScheduler, monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("FALLIBLE_TIMEOUT_PARALLEL", "0.05")
    clear_settings_cache()
    release = threading.Event()
    try:
        result = AsyncResult.in_parallel(
            executor, lambda a, b: ok(a), lambda: release.wait(5), lambda: 1, scheduler=scheduler,
        )
        assert isinstance(result.get_failure().to_exception(), TimeoutError)
    finally:
        release.set()


def test_in_parallel_rejects_invalid_timeout(executor: ThreadPoolExecutor) -> None:
    with pytest.raises(InvalidArgumentError):
        AsyncResult.in_parallel(executor, lambda a, b: ok(a), lambda: 1, lambda: 2, -1)


# ═════════════════════════════════════════════════════════════════════════════
# Coroutines
# ═════════════════════════════════════════════════════════════════════════════


def test_from_coroutine(executor: ThreadPoolExecutor) -> None:
    import asyncio

    async def fetch() -> int:
        await asyncio.sleep(0)
        return 7

    assert AsyncResult.from_coroutine(fetch(), executor=executor).get_or_throw() == 7


def test_from_coroutine_fault(executor: ThreadPoolExecutor) -> None:
    async def broken() -> int:
        raise ValueError("async")

    result = AsyncResult.from_coroutine(broken(), executor=executor)
    assert isinstance(result.get_failure().to_exception(), ValueError)


def test_from_coroutine_on_running_loop() -> None:
    import asyncio

    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()
    try:
        async def answer() -> int:
            return 42

        assert AsyncResult.from_coroutine(answer(), loop=loop).get_or_throw() == 42
    finally:
        loop.call_soon_threadsafe(loop.stop)
        thread.join(5)
        loop.close()
