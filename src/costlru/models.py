"""Cache entry model.

An Entry is both the Index value for its key and a node of the recency
list. Entries are owned by the cache and never handed out to callers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Generic, Hashable, Optional, TypeVar

T = TypeVar("T")


@dataclass(slots=True, eq=False)
class Entry(Generic[T]):
    # Stores value + cost + monotonic expiration (ms), plus list links
    key: Hashable
    value: T
    cost: float = 1
    expires_at: float = math.inf
    prev: Optional["Entry[Any]"] = field(default=None, repr=False)
    next: Optional["Entry[Any]"] = field(default=None, repr=False)
