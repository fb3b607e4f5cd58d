"""Tests for the timeout scheduler and the shared runtime services."""

from __future__ import annotations

import threading
import time

import pytest

from fallible import (
    InvalidArgumentError,
    SchedulerShutdownError,
    ThreadPool,
    TimeoutScheduler,
    get_default_executor,
    get_scheduler,
    shutdown_default_executor,
    shutdown_scheduler,
)
from fallible.runtime.concurrency import TaskState


# ═════════════════════════════════════════════════════════════════════════════
# TimeoutScheduler
# ═════════════════════════════════════════════════════════════════════════════


def test_task_fires_once(scheduler: TimeoutScheduler) -> None:
    fired = threading.Event()
    task = scheduler.schedule(0.01, fired.set)

    assert fired.wait(5)
    time.sleep(0.02)
    assert task.state is TaskState.FIRED
    assert task.done()
    assert not task.cancel()


def test_cancelled_task_never_fires(scheduler: TimeoutScheduler) -> None:
    fired = threading.Event()
    task = scheduler.schedule(0.1, fired.set)

    assert task.cancel()
    assert task.cancelled()
    assert not fired.wait(0.2)
    assert scheduler.pending() == 0


def test_tasks_fire_in_deadline_order(scheduler: TimeoutScheduler) -> None:
    order: list[str] = []
    done = threading.Event()

    scheduler.schedule(0.1, lambda: (order.append("late"), done.set()))
    scheduler.schedule(0.02, lambda: order.append("early"))

    assert done.wait(5)
    assert order == ["early", "late"]


def test_failing_callback_does_not_stop_scheduler(scheduler: TimeoutScheduler) -> None:
    fired = threading.Event()
    scheduler.schedule(0.01, lambda: 1 / 0)
    scheduler.schedule(0.02, fired.set)
    assert fired.wait(5)


def test_schedule_rejects_invalid_arguments(scheduler: TimeoutScheduler) -> None:
    with pytest.raises(InvalidArgumentError):
        scheduler.schedule(-1, lambda: None)
    with pytest.raises(InvalidArgumentError):
        scheduler.schedule(1, None)  # type: ignore[arg-type]


def test_shutdown_cancels_pending() -> None:
    timer = TimeoutScheduler()
    task = timer.schedule(10, lambda: None)

    timer.shutdown()

    assert task.cancelled()
    assert timer.is_shutdown
    with pytest.raises(SchedulerShutdownError):
        timer.schedule(1, lambda: None)


def test_context_manager_shuts_down() -> None:
    with TimeoutScheduler() as timer:
        timer.schedule(10, lambda: None)
    assert timer.is_shutdown


def test_shared_scheduler_is_recreated() -> None:
    first = get_scheduler()
    assert get_scheduler() is first

    shutdown_scheduler()
    second = get_scheduler()

    assert second is not first
    assert not second.is_shutdown


# ═════════════════════════════════════════════════════════════════════════════
# Pools
# ═════════════════════════════════════════════════════════════════════════════


def test_thread_pool_context_manager() -> None:
    with ThreadPool(max_workers=2) as pool:
        assert pool.submit(lambda: 21 * 2).result(timeout=5) == 42


def test_thread_pool_rejects_zero_workers() -> None:
    with pytest.raises(InvalidArgumentError):
        ThreadPool(max_workers=0)


def test_thread_pool_from_executor_is_not_owned() -> None:
    from concurrent.futures import ThreadPoolExecutor

    executor = ThreadPoolExecutor(max_workers=1)
    with ThreadPool.from_executor(executor) as pool:
        assert pool.executor is executor
    assert executor.submit(lambda: 1).result(timeout=5) == 1
    executor.shutdown()


def test_default_executor_is_shared_and_recreated() -> None:
    first = get_default_executor()
    assert get_default_executor() is first

    shutdown_default_executor()
    second = get_default_executor()

    assert second is not first
    assert second.submit(lambda: "ok").result(timeout=5) == "ok"
