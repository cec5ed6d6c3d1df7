"""Doubly-linked recency list over cache entries.

Head is the most recently used entry, tail the least recently used one.
Both detach and promote are O(1).
"""

from __future__ import annotations

from typing import Any, Iterator, Optional

from costlru.models import Entry


class RecencyList:
    __slots__ = ("head", "tail")

    def __init__(self) -> None:
        self.head: Optional[Entry[Any]] = None
        self.tail: Optional[Entry[Any]] = None

    def detach(self, entry: Entry[Any]) -> None:
        # The detached entry keeps its own links so a running iteration can
        # step past it. Callers detach each entry at most once per removal.
        if self.head is entry:
            self.head = entry.next
        if self.tail is entry:
            self.tail = entry.prev

        if entry.next is not None:
            entry.next.prev = entry.prev
        if entry.prev is not None:
            entry.prev.next = entry.next

    def promote(self, entry: Entry[Any]) -> None:
        """Make entry the most recently used one."""
        if self.head is entry:
            return
        self.detach(entry)

        entry.prev = None
        entry.next = self.head
        if self.head is not None:
            self.head.prev = entry
        self.head = entry
        if self.tail is None:
            self.tail = entry

    def clear(self) -> None:
        self.head = None
        self.tail = None

    def __iter__(self) -> Iterator[Entry[Any]]:
        entry = self.head
        while entry is not None:
            yield entry
            entry = entry.next

    def __reversed__(self) -> Iterator[Entry[Any]]:
        entry = self.tail
        while entry is not None:
            yield entry
            entry = entry.prev
