import asyncio

import pytest

from costlru.cache import LRUCache
from costlru.errors import ReadThroughError


def _triple_upper(key):
    upper = key.upper()
    return f"{upper}{upper}{upper}"


@pytest.mark.asyncio
async def test_materialize_resolves_and_caches_task():
    c = LRUCache()
    c.materialize = _triple_upper

    task = c.get("x")

    assert isinstance(task, asyncio.Task)
    assert c.size == 1
    assert c.cost == 1
    assert c.has("x")
    assert await task == "XXX"

    # The task itself stays cached
    assert c.get("x") is task
    assert c.size == 1


@pytest.mark.asyncio
async def test_concurrent_gets_share_one_call():
    calls = []
    release = asyncio.Event()

    async def slow_fetch(key):
        calls.append(key)
        await release.wait()
        return key * 2

    c = LRUCache()
    c.materialize = slow_fetch

    first = c.get("ab")
    await asyncio.sleep(0)
    second = c.get("ab")

    assert second is first
    release.set()
    assert await asyncio.gather(first, second) == ["abab", "abab"]
    assert calls == ["ab"]


@pytest.mark.asyncio
async def test_per_call_resolver_overrides_materialize():
    c = LRUCache()
    c.materialize = _triple_upper

    task = c.get("y", lambda key: "from resolver")

    assert await task == "from resolver"


@pytest.mark.asyncio
async def test_resolver_returning_future():
    loop = asyncio.get_running_loop()
    fut = loop.create_future()
    fut.set_result(42)

    c = LRUCache()
    task = c.get("answer", lambda key: fut)

    assert await task == 42


@pytest.mark.asyncio
async def test_materialize_failure_removes_entry():
    def boom(key):
        raise RuntimeError("fail")

    c = LRUCache()
    c.materialize = boom

    task = c.get("y")
    assert c.has("y")

    with pytest.raises(RuntimeError, match="fail"):
        await task
    await asyncio.sleep(0)

    assert c.size == 0
    assert c.cost == 0
    assert not c.has("y")


@pytest.mark.asyncio
async def test_async_failure_removes_entry():
    async def boom(key):
        await asyncio.sleep(0)
        raise ValueError(key)

    c = LRUCache()
    task = c.get("k", boom)

    with pytest.raises(ValueError):
        await task
    await asyncio.sleep(0)

    assert "k" not in c


@pytest.mark.asyncio
async def test_failure_keeps_value_set_meanwhile():
    release = asyncio.Event()

    async def boom(key):
        await release.wait()
        raise RuntimeError("late")

    c = LRUCache()
    task = c.get("k", boom)
    c.set("k", "fresh")

    release.set()
    with pytest.raises(RuntimeError):
        await task
    await asyncio.sleep(0)

    assert c.get("k") == "fresh"


@pytest.mark.asyncio
async def test_cancelled_task_is_discarded():
    async def never(key):
        await asyncio.Event().wait()

    c = LRUCache()
    task = c.get("k", never)
    await asyncio.sleep(0)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    await asyncio.sleep(0)

    assert not c.has("k")


@pytest.mark.asyncio
async def test_clear_does_not_cancel_pending_task():
    c = LRUCache()
    task = c.get("k", lambda key: "value")

    c.clear()

    assert await task == "value"
    assert c.size == 0


@pytest.mark.asyncio
async def test_materialize_then_set_with_cost():
    async def fetch(key):
        return "ZZZ"

    c = LRUCache()
    task = c.get("z", fetch)
    task.add_done_callback(lambda t: c.set("z", t, cost=5))

    assert await task == "ZZZ"
    await asyncio.sleep(0)

    assert c.size == 1
    assert c.cost == 5
    assert await c.get("z") == "ZZZ"


@pytest.mark.asyncio
async def test_expired_entry_goes_through_resolver(clock):
    c = LRUCache()
    c.set("k", "old", ttl=10)
    clock.advance(10)

    task = c.get("k", lambda key: "new")

    assert await task == "new"
    assert c.size == 1


@pytest.mark.asyncio
async def test_materialized_task_respects_limit_zero():
    c = LRUCache(0)

    task = c.get("k", lambda key: "v")

    assert await task == "v"
    assert c.size == 0


def test_miss_without_resolver_returns_none():
    c = LRUCache()

    assert c.get("missing") is None
    assert c.get("missing", "not callable") is None


def test_read_through_requires_running_loop():
    c = LRUCache()

    with pytest.raises(ReadThroughError):
        c.get("k", lambda key: "v")
    assert c.size == 0


@pytest.mark.asyncio
async def test_failed_task_leaves_cloned_cache():
    release = asyncio.Event()

    async def boom(key):
        await release.wait()
        raise RuntimeError("x")

    source = LRUCache()
    task = source.get("k", boom)
    clone = LRUCache(source)
    assert clone.get("k") is task

    release.set()
    with pytest.raises(RuntimeError):
        await task
    await asyncio.sleep(0)

    assert not source.has("k")
    assert not clone.has("k")
    assert clone.size == 0


@pytest.mark.asyncio
async def test_resolved_task_stays_in_cloned_cache():
    source = LRUCache()
    task = source.get("k", lambda key: "v")
    clone = LRUCache(source)

    assert await task == "v"
    await asyncio.sleep(0)

    assert clone.get("k") is task
