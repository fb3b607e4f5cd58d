"""Bridging asyncio coroutines into concurrent.futures handles.

AsyncResult observes ``concurrent.futures.Future`` objects. These helpers turn
a coroutine into one:
    - running loop supplied  -> asyncio.run_coroutine_threadsafe
    - no loop                -> asyncio.run on a pool thread

Example:
    >>> future = submit_coroutine(fetch_user(42))
    >>> future.result()
"""

from __future__ import annotations

import asyncio
import contextvars
from concurrent.futures import Executor, Future
from typing import Coroutine, TypeVar

from .pool import get_default_executor

T = TypeVar("T")

__all__ = ["submit_coroutine"]


def submit_coroutine(
    coro: Coroutine[object, object, T],
    *,
    loop: asyncio.AbstractEventLoop | None = None,
    executor: Executor | None = None,
) -> Future[T]:
    """Schedule a coroutine and return a concurrent.futures.Future for its outcome.

    Args:
        coro: Coroutine to execute
        loop: Running event loop (in another thread) to schedule on
        executor: Pool used to host ``asyncio.run`` when no loop is given

    Returns:
        Future completed with the coroutine's return value or exception
    """
    if loop is not None:
        return asyncio.run_coroutine_threadsafe(coro, loop)
    ctx = contextvars.copy_context()
    return (executor or get_default_executor()).submit(ctx.run, asyncio.run, coro)
