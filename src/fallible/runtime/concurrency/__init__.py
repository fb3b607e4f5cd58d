"""Concurrency primitives: shared pool, timeout scheduler, coroutine bridging and atomic cells.

    - ThreadPool / get_default_executor: where deferred and async work runs
    - TimeoutScheduler / get_scheduler: one-shot timers for timeout races
    - submit_coroutine: asyncio coroutine -> concurrent.futures.Future
    - Mutation / Agent: cells with serialized updates
"""

from .cell import Agent, Mutation
from .interop import submit_coroutine
from .pool import ThreadPool, get_default_executor, shutdown_default_executor
from .scheduler import ScheduledTask, TaskState, TimeoutScheduler, get_scheduler, shutdown_scheduler

__all__ = [
    # Pools
    "ThreadPool", "get_default_executor", "shutdown_default_executor",
    # Timers
    "TimeoutScheduler", "ScheduledTask", "TaskState", "get_scheduler", "shutdown_scheduler",
    # Interop
    "submit_coroutine",
    # Cells
    "Mutation", "Agent",
]
