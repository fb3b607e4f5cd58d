"""Thread pools that run deferred and future-backed work.

fallible does not own a scheduler. Work runs on an executor the caller
passes in, or on one shared process-wide ThreadPoolExecutor created on first
use and sized by ``ExecutorSettings``.

Example:
    >>> with ThreadPool(max_workers=4) as pool:
    ...     lazy.start(pool.executor)

    >>> # Shared pool
    >>> executor = get_default_executor()
    >>> shutdown_default_executor()   # at process end
"""

from __future__ import annotations

import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, ParamSpec, TypeVar

from fallible.foundation.config import get_settings
from fallible.foundation.errors import InvalidArgumentError
from fallible.runtime.observability import get_logger

if TYPE_CHECKING:
    from types import TracebackType

T = TypeVar("T")
P = ParamSpec("P")

__all__ = [
    "ThreadPool",
    "get_default_executor",
    "shutdown_default_executor",
]

logger = get_logger("pool")

_default_executor: ThreadPoolExecutor | None = None
_executor_lock = threading.Lock()


@dataclass(slots=True)
class ThreadPool:
    """Owned ThreadPoolExecutor with context-manager lifecycle.

    Example:
        >>> with ThreadPool(4) as pool:
        ...     result = AsyncResult.create(pool.executor, load_user).get_or_throw()
    """

    max_workers: int = field(default_factory=lambda: get_settings().executor.max_workers)
    thread_name_prefix: str = field(default_factory=lambda: get_settings().executor.thread_name_prefix)
    _executor: ThreadPoolExecutor | None = field(default=None, repr=False)
    _owned: bool = field(default=True, repr=False)

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise InvalidArgumentError("max_workers must be >= 1")

    @classmethod
    def from_executor(cls, executor: ThreadPoolExecutor) -> ThreadPool:
        """Wrap an existing ThreadPoolExecutor. It is not shut down on exit."""
        return cls(
            max_workers=getattr(executor, "_max_workers", 1),
            thread_name_prefix="",
            _executor=executor,
            _owned=False,
        )

    @property
    def executor(self) -> ThreadPoolExecutor:
        """Get or create the underlying executor."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix=self.thread_name_prefix,
            )
        return self._executor

    def submit(self, func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> Future[T]:
        """Submit work and return its Future."""
        return self.executor.submit(func, *args, **kwargs)

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        """Shut down the pool if this wrapper created it."""
        if self._executor and self._owned:
            self._executor.shutdown(wait=wait, cancel_futures=cancel_futures)
            self._executor = None

    def __enter__(self) -> ThreadPool:
        _ = self.executor
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.shutdown(wait=True, cancel_futures=exc_val is not None)


def get_default_executor() -> Executor:
    """Get or create the shared background executor."""
    global _default_executor
    if _default_executor is None:
        with _executor_lock:
            if _default_executor is None:
                settings = get_settings().executor
                _default_executor = ThreadPoolExecutor(
                    max_workers=settings.max_workers,
                    thread_name_prefix=settings.thread_name_prefix,
                )
                logger.debug("shared executor started with %d workers", settings.max_workers)
    return _default_executor


def shutdown_default_executor(wait: bool = True) -> None:
    """Shut down the shared executor. A later get_default_executor() creates a fresh one."""
    global _default_executor
    with _executor_lock:
        executor, _default_executor = _default_executor, None
    if executor is not None:
        executor.shutdown(wait=wait)
        logger.debug("shared executor shut down")
