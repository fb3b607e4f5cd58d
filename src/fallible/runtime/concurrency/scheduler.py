"""One-shot timer service used to race computations against a deadline.

A single daemon thread sleeps until the earliest deadline and fires its
callback. Each schedule() returns a ScheduledTask that fires at most once
and can be cancelled before it does.

The scheduler is an ordinary object with an explicit lifecycle, so tests and
applications can inject their own. ``get_scheduler()`` hands out a shared
instance for callers that do not care.

Example:
    >>> with TimeoutScheduler() as scheduler:
    ...     task = scheduler.schedule(0.5, lambda: print("fired"))
    ...     task.cancel()
"""

from __future__ import annotations

import heapq
import itertools
import threading
import time
from enum import StrEnum
from typing import TYPE_CHECKING, Callable

from fallible.foundation.config import get_settings
from fallible.foundation.errors import InvalidArgumentError, SchedulerShutdownError
from fallible.runtime.observability import get_logger

if TYPE_CHECKING:
    from types import TracebackType

__all__ = [
    "ScheduledTask",
    "TaskState",
    "TimeoutScheduler",
    "get_scheduler",
    "shutdown_scheduler",
]

logger = get_logger("scheduler")


class TaskState(StrEnum):
    """Lifecycle of a scheduled task."""
    PENDING = "pending"
    FIRED = "fired"
    CANCELLED = "cancelled"


class ScheduledTask:
    """Handle to a callback scheduled once on a TimeoutScheduler."""

    __slots__ = ("deadline", "_callback", "_state", "_lock")

    def __init__(self, deadline: float, callback: Callable[[], object]) -> None:
        self.deadline = deadline
        self._callback = callback
        self._state = TaskState.PENDING
        self._lock = threading.Lock()

    @property
    def state(self) -> TaskState:
        return self._state

    def cancel(self) -> bool:
        """Prevent the callback from firing. False if it already fired."""
        with self._lock:
            if self._state is TaskState.FIRED:
                return False
            self._state = TaskState.CANCELLED
            return True

    def cancelled(self) -> bool:
        return self._state is TaskState.CANCELLED

    def done(self) -> bool:
        """True once the task fired or was cancelled."""
        return self._state is not TaskState.PENDING

    def _claim(self) -> bool:
        with self._lock:
            if self._state is not TaskState.PENDING:
                return False
            self._state = TaskState.FIRED
            return True

    def _run(self) -> None:
        if not self._claim():
            return
        try:
            self._callback()
        except Exception:
            logger.exception("scheduled callback failed")

    def __repr__(self) -> str:
        return f"ScheduledTask(deadline={self.deadline:.3f}, state={self._state})"


class TimeoutScheduler:
    """Single-thread timer queue.

    The worker thread starts lazily on the first schedule() and stops on
    shutdown(). Pending tasks are cancelled on shutdown.
    """

    def __init__(self, thread_name: str | None = None) -> None:
        self._thread_name = thread_name or get_settings().timeout.scheduler_thread_name
        self._queue: list[tuple[float, int, ScheduledTask]] = []
        self._counter = itertools.count()
        self._condition = threading.Condition()
        self._thread: threading.Thread | None = None
        self._shutdown = False

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def schedule(self, delay: float, callback: Callable[[], object]) -> ScheduledTask:
        """Run callback once, ``delay`` seconds from now.

        Raises:
            InvalidArgumentError: negative delay or missing callback
            SchedulerShutdownError: scheduler already shut down
        """
        if callback is None:
            raise InvalidArgumentError("callback can not be None")
        if delay < 0:
            raise InvalidArgumentError(f"delay must be >= 0, got {delay}")
        task = ScheduledTask(time.monotonic() + delay, callback)
        with self._condition:
            if self._shutdown:
                raise SchedulerShutdownError("TimeoutScheduler has been shut down")
            heapq.heappush(self._queue, (task.deadline, next(self._counter), task))
            self._ensure_started()
            self._condition.notify()
        return task

    def pending(self) -> int:
        """Number of tasks that have neither fired nor been cancelled."""
        with self._condition:
            return sum(1 for _, _, task in self._queue if not task.done())

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker thread and cancel every pending task."""
        with self._condition:
            if self._shutdown:
                return
            self._shutdown = True
            for _, _, task in self._queue:
                task.cancel()
            self._queue.clear()
            self._condition.notify_all()
            thread = self._thread
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join()
        logger.debug("timeout scheduler %s stopped", self._thread_name)

    def _ensure_started(self) -> None:
        if self._thread is None:
            self._thread = threading.Thread(target=self._loop, name=self._thread_name, daemon=True)
            self._thread.start()
            logger.debug("timeout scheduler %s started", self._thread_name)

    def _loop(self) -> None:
        while True:
            with self._condition:
                while not self._shutdown:
                    if not self._queue:
                        self._condition.wait()
                        continue
                    deadline, _, task = self._queue[0]
                    if task.done():
                        heapq.heappop(self._queue)
                        continue
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        heapq.heappop(self._queue)
                        break
                    self._condition.wait(remaining)
                else:
                    return
            task._run()

    def __enter__(self) -> TimeoutScheduler:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.shutdown()


_default_scheduler: TimeoutScheduler | None = None
_scheduler_lock = threading.Lock()


def get_scheduler() -> TimeoutScheduler:
    """Get or create the shared scheduler."""
    global _default_scheduler
    with _scheduler_lock:
        if _default_scheduler is None or _default_scheduler.is_shutdown:
            _default_scheduler = TimeoutScheduler()
        return _default_scheduler


def shutdown_scheduler(wait: bool = True) -> None:
    """Shut down the shared scheduler, if one was created."""
    global _default_scheduler
    with _scheduler_lock:
        scheduler, _default_scheduler = _default_scheduler, None
    if scheduler is not None:
        scheduler.shutdown(wait=wait)
