"""Result types for success-or-failure computation chains.

Three execution styles share one contract:
- DirectResult: eager
- LazyResult: deferred, forced once, memoized
- AsyncResult: backed by a concurrent.futures.Future

Example:
    >>> from fallible.monads import LazyResult, join, ok
    >>>
    >>> total = join(sum, ok(1), LazyResult.create(lambda: 2))
    >>> total.get_or_throw()
    3
"""

from .future import AsyncResult
from .lazy import LazyResult, LazyState
from .result import (
    DirectResult,
    FaultKind,
    Result,
    create_checked,
    failure,
    failures,
    flatten,
    from_supplier,
    join,
    ok,
    sequence,
)

__all__ = [
    # Core types
    "Result",
    "DirectResult",
    "LazyResult",
    "LazyState",
    "AsyncResult",
    "FaultKind",
    # Constructors
    "ok",
    "failure",
    "failures",
    "create_checked",
    "from_supplier",
    # Collection operations
    "join",
    "sequence",
    "flatten",
]
