"""Read-through support: turn a resolver call into a cacheable task.

A resolver may return a plain value, return an awaitable, or raise. All three
are normalized into one asyncio.Task so the cache can store the pending task
before the resolver runs and hand the same task to every concurrent lookup.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, Hashable

from costlru.errors import ReadThroughError

Resolver = Callable[[Hashable], Any]


async def _materialize(resolver: Resolver, key: Hashable) -> Any:
    result = resolver(key)
    if inspect.isawaitable(result):
        result = await result
    return result


def start_materialization(resolver: Resolver, key: Hashable) -> "asyncio.Task[Any]":
    """Schedule resolver(key) on the running loop and return its task.

    The resolver itself runs on the next loop iteration, so a synchronous
    exception ends up on the task instead of propagating to the caller.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError as e:
        raise ReadThroughError("Read-through requires a running event loop") from e
    return loop.create_task(_materialize(resolver, key))


def task_failed(task: "asyncio.Future[Any]") -> bool:
    # Only valid on a done task. Reading the exception also marks it retrieved.
    return task.cancelled() or task.exception() is not None
