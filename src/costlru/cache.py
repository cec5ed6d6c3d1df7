"""In-memory LRU cache with weighted capacity and lazy TTL expiration.

Entries live in a dict index (key -> Entry) and, at the same time, in a
doubly-linked recency list. Every mutating or promoting operation updates
both, so they always agree on which keys are live.

Eviction frees room for a new entry: expired entries go first, then the
least recently used ones, until the total cost fits under the limit.
Expiration is lazy; expired entries are purged on read, on iteration, or
when eviction needs the room. There is no background timer.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Dict, Generic, Hashable, Iterator, Optional, Tuple, TypeVar

import structlog

from costlru import config
from costlru.inputs import actual_cost, actual_limit, is_expired, ttl_to_expires
from costlru.models import Entry
from costlru.read_through import Resolver, start_materialization, task_failed
from costlru.recency import RecencyList

# Emits through stdlib logging, so nothing is written until the host
# configures a handler (see log_config.configure_logging)
logger = structlog.wrap_logger(logging.getLogger(__name__))

T = TypeVar("T")


def _is_source(value: object) -> bool:
    return isinstance(value, Iterable) and not isinstance(value, (str, bytes, bytearray))


class LRUCache(Generic[T]):
    """Cache bounded by total cost, evicting expired then least recently used entries.

    Usage:
        cache = LRUCache(5)
        cache.set("a", 1).set("b", 2, cost=3, ttl=1000)
        cache.get("a")         # 1, and "a" becomes most recent
        list(cache.keys())     # ["a", "b"]

    The first argument may also be a source to seed from: another LRUCache
    (its limit and materialize hook are inherited, order/cost/expiration are
    copied), a mapping, or any iterable of (key, value) pairs.
    """

    def __init__(self, limit: Any = None, source: Any = None) -> None:
        if _is_source(limit):
            source = limit
            limit = source.limit if isinstance(source, LRUCache) else None

        self._index: Dict[Hashable, Entry[T]] = {}
        self._recency = RecencyList()
        self._cost: float = 0
        self.materialize: Optional[Resolver] = None
        self.limit = config.DEFAULT_LIMIT if limit is None else limit

        if isinstance(source, LRUCache):
            self._clone_cache(source)
        elif source is not None:
            self._clone_pairs(source)

    def _clone_pairs(self, source: Any) -> None:
        pairs = source.items() if isinstance(source, Mapping) else source
        for key, value in pairs:
            self.set(key, value)

    def _clone_cache(self, source: "LRUCache[T]") -> None:
        # Replay least to most recent so the final order matches the source
        self.materialize = source.materialize
        for entry in reversed(source._recency):
            self._store(entry.key, entry.value, entry.cost, entry.expires_at)
            # Pending tasks must also leave this copy if they fail
            if isinstance(entry.value, asyncio.Future) and entry.key in self._index:
                entry.value.add_done_callback(functools.partial(self._discard_failed, entry.key))

    @property
    def limit(self) -> float:
        return self._limit

    @limit.setter
    def limit(self, value: Any) -> None:
        # Takes effect on the next set(); lowering it never evicts here
        self._limit = actual_limit(value)

    @property
    def cost(self) -> float:
        return self._cost

    @property
    def size(self) -> int:
        return len(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def clear(self) -> None:
        self._index = {}
        self._cost = 0
        self._recency.clear()

    def delete(self, key: Hashable) -> bool:
        """Remove key. Returns True if it was in the index, expired or not."""
        entry = self._index.pop(key, None)
        if entry is None:
            return False

        self._recency.detach(entry)
        self._cost -= entry.cost
        return True

    def _evict_to(self, target: float) -> None:
        # Expired entries first, in index (insertion) order, but only as many
        # as needed to reach the target.
        expired = []
        remaining = self._cost
        for entry in self._index.values():
            if remaining <= target:
                break
            if is_expired(entry.expires_at):
                expired.append(entry.key)
                remaining -= entry.cost
        for key in expired:
            self.delete(key)

        lru = 0
        while self._index and self._cost > target:
            self.delete(self._recency.tail.key)
            lru += 1

        if expired or lru:
            logger.debug(
                "cache_evicted",
                expired=len(expired),
                lru=lru,
                cost=self._cost,
                target=target,
            )

    def get(self, key: Hashable, resolver: Optional[Resolver] = None) -> Any:
        """Return the value for key and make it the most recent entry.

        On a miss (absent or expired), calls resolver (or self.materialize)
        through the read-through path and returns its task. Returns None on a
        miss without a resolver.

        Read-through needs a running event loop: a miss with a resolver and
        no running loop raises ReadThroughError. Resolver failures never
        raise here; they surface when the task is awaited.
        """
        entry = self._index.get(key)
        if entry is None:
            return self._read_through(key, resolver)

        if is_expired(entry.expires_at):
            self.delete(key)
            return self._read_through(key, resolver)

        self._recency.promote(entry)
        return entry.value

    def _read_through(self, key: Hashable, resolver: Optional[Resolver]) -> Optional["asyncio.Task[Any]"]:
        resolver = resolver if resolver is not None else self.materialize
        if not callable(resolver):
            return None

        task = start_materialization(resolver, key)
        # Cache the pending task right away so concurrent lookups share it
        self.set(key, task)
        task.add_done_callback(functools.partial(self._discard_failed, key))
        return task

    def _discard_failed(self, key: Hashable, task: "asyncio.Task[Any]") -> None:
        if not task_failed(task):
            return

        logger.debug(
            "cache_materialize_failed",
            key=key,
            error="cancelled" if task.cancelled() else repr(task.exception()),
        )
        # The key may have been overwritten or deleted meanwhile
        entry = self._index.get(key)
        if entry is not None and entry.value is task:
            self.delete(key)
            logger.debug("cache_materialize_discarded", key=key)

    def has(self, key: Hashable) -> bool:
        """True if key is stored and not expired. Does not touch recency."""
        entry = self._index.get(key)
        if entry is None:
            return False
        return not is_expired(entry.expires_at)

    def __contains__(self, key: object) -> bool:
        return self.has(key)

    def entries(self) -> Iterator[Tuple[Hashable, T]]:
        """Yield (key, value) pairs from most to least recent.

        Expired entries met on the way are deleted and skipped, so iterating
        to the end purges every expired entry.
        """
        entry = self._recency.head
        while entry is not None:
            if is_expired(entry.expires_at):
                self.delete(entry.key)
            else:
                yield entry.key, entry.value
            entry = entry.next

    __iter__ = entries

    def keys(self) -> Iterator[Hashable]:
        for key, _ in self.entries():
            yield key

    def values(self) -> Iterator[T]:
        for _, value in self.entries():
            yield value

    def for_each(self, callback: Callable[..., Any], this_arg: Any = None) -> None:
        # callback(value, key, cache); this_arg, when given, is passed first
        if this_arg is not None:
            callback = functools.partial(callback, this_arg)
        for key, value in self.entries():
            callback(value, key, self)

    def set(
        self,
        key: Hashable,
        value: T,
        *,
        cost: Any = None,
        ttl: Any = None,
    ) -> "LRUCache[T]":
        """Store value under key and make it the most recent entry.

        cost defaults to one and counts against limit. ttl is in milliseconds;
        without one the entry never expires. A key that is already expired
        (ttl <= 0) or costs more than the limit is dropped without evicting
        anything else. Returns the cache so calls can be chained.
        """
        cost = actual_cost(cost)
        expires_at = ttl_to_expires(ttl)

        self.delete(key)
        return self._store(key, value, cost, expires_at)

    def _store(self, key: Hashable, value: T, cost: float, expires_at: float) -> "LRUCache[T]":
        # Never going to be returned, so don't evict older keys for it
        if is_expired(expires_at):
            logger.debug("cache_set_skipped", key=key, reason="expired")
            return self

        # Can't fit even in an empty cache
        if cost > self._limit:
            logger.debug("cache_set_skipped", key=key, reason="over_limit", cost=cost, limit=self._limit)
            return self

        self._evict_to(self._limit - cost)

        entry = Entry(key=key, value=value, cost=cost, expires_at=expires_at)
        self._recency.promote(entry)
        self._index[key] = entry
        self._cost += cost
        return self

    def __repr__(self) -> str:
        # Raw view: no promotion, no purge of expired entries
        items = ", ".join(f"{entry.key!r}: {entry.value!r}" for entry in self._recency)
        return f"{type(self).__name__}({{{items}}}, limit={self._limit!r}, cost={self._cost!r})"
