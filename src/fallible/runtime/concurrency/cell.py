"""Atomic cells: one mutable slot whose updates are serialized per cell.

Two flavours:
    Mutation  update(f) runs f in the caller's thread under the cell's lock
    Agent     update(f) enqueues f; a mailbox is drained one function at a
              time on an executor, so callers never block

In both, updates on one cell form a single total order: no two updates see
the same snapshot and none is lost. Each cell owns its own lock.

Example:
    >>> counter = Mutation.create(0)
    >>> counter.update(lambda n: n + 1).get()
    1

    >>> agent = Agent.create([])
    >>> agent.update(lambda xs: [*xs, "a"])
    >>> agent.read().get_or_throw()     # waits for pending updates
    ['a']
"""

from __future__ import annotations

import threading
from collections import deque
from concurrent.futures import Executor, Future
from typing import TYPE_CHECKING, Callable, Generic, TypeVar

from fallible.foundation.config import get_settings
from fallible.foundation.errors import InvalidArgumentError, MailboxFullError
from fallible.runtime.observability import get_logger

from .pool import get_default_executor

if TYPE_CHECKING:
    from fallible.monads.future import AsyncResult

T = TypeVar("T")

__all__ = ["Agent", "Mutation"]

logger = get_logger("cell")


def _require_value(value: object, owner: str) -> None:
    if value is None:
        raise InvalidArgumentError(f"None value is not allowed for {owner}")


class Mutation(Generic[T]):
    """Cell updated synchronously under a per-instance lock.

    ``get`` never blocks and returns the last fully applied value. A fault
    raised by an update function propagates to that caller and leaves the
    value untouched.
    """

    __slots__ = ("_value", "_lock")

    def __init__(self, initial: T) -> None:
        _require_value(initial, "Mutation")
        self._value = initial
        self._lock = threading.Lock()

    @classmethod
    def create(cls, initial: T) -> Mutation[T]:
        return cls(initial)

    def get(self) -> T:
        return self._value

    def update(self, f: Callable[[T], T]) -> Mutation[T]:
        """Replace the value with ``f(current)``. Returns self for chaining."""
        if not callable(f):
            raise InvalidArgumentError(f"{f!r} is not a valid update function")
        with self._lock:
            updated = f(self._value)
            _require_value(updated, "Mutation")
            self._value = updated
        return self

    mutate = update

    def __repr__(self) -> str:
        return f"Mutation({self._value!r})"


class Agent(Generic[T]):
    """Cell whose updates are queued and applied one at a time on an executor.

    ``update`` returns immediately. ``get`` returns the latest applied value
    without waiting; ``read`` resolves after every update enqueued before it.
    Update functions are assumed total: one that raises (or returns None)
    is logged and skipped, leaving the value unchanged.
    """

    __slots__ = ("_value", "_executor", "_max_capacity", "_mailbox", "_lock", "_draining")

    def __init__(self, initial: T, executor: Executor | None = None, max_capacity: int | None = None) -> None:
        _require_value(initial, "Agent")
        capacity = get_settings().agent.max_capacity if max_capacity is None else max_capacity
        if capacity < 1:
            raise InvalidArgumentError("max_capacity must be >= 1")
        self._value = initial
        self._executor = executor
        self._max_capacity = capacity
        self._mailbox: deque[Callable[[T], T]] = deque()
        self._lock = threading.Lock()
        self._draining = False

    @classmethod
    def create(cls, initial: T, *, executor: Executor | None = None, max_capacity: int | None = None) -> Agent[T]:
        return cls(initial, executor, max_capacity)

    def get(self) -> T:
        """Latest fully applied value. Does not wait for queued updates."""
        return self._value

    def update(self, f: Callable[[T], T]) -> Agent[T]:
        """Queue ``f``; it runs after every previously queued function.

        Raises:
            MailboxFullError: ``max_capacity`` updates are already pending
        """
        if not callable(f):
            raise InvalidArgumentError(f"{f!r} is not a valid update function")
        self._enqueue(f)
        return self

    def read(self) -> AsyncResult[T]:
        """AsyncResult of the value as seen after all updates queued so far."""
        from fallible.monads.future import AsyncResult

        future: Future[T] = Future()
        future.set_running_or_notify_cancel()

        def capture(current: T) -> T:
            future.set_result(current)
            return current

        self._enqueue(capture)
        return AsyncResult.of(future)

    def pending(self) -> int:
        """Number of queued updates not yet started."""
        with self._lock:
            return len(self._mailbox)

    def _enqueue(self, f: Callable[[T], T]) -> None:
        with self._lock:
            if len(self._mailbox) >= self._max_capacity:
                raise MailboxFullError(f"Agent mailbox is full ({self._max_capacity} pending updates)")
            self._mailbox.append(f)
            if self._draining:
                return
            self._draining = True
        try:
            (self._executor or get_default_executor()).submit(self._drain)
        except RuntimeError as exc:
            # Executor shut down: the caller drains; ordering still holds because _draining is ours
            logger.warning("executor rejected agent drain, draining inline: %s", exc)
            self._drain()

    def _drain(self) -> None:
        while True:
            with self._lock:
                if not self._mailbox:
                    self._draining = False
                    return
                f = self._mailbox.popleft()
            try:
                updated = f(self._value)
                _require_value(updated, "Agent")
            except Exception:
                logger.exception("agent update failed, value left unchanged")
            else:
                self._value = updated

    def __repr__(self) -> str:
        return f"Agent({self._value!r}, pending={self.pending()})"
