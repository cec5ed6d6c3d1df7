"""Input normalization for limits, costs and TTLs.

None of these helpers raise: anything that isn't a usable number is coerced
to a safe default (unbounded limit, cost of one, no expiration).
"""

from __future__ import annotations

import math
import numbers
import time


def _finite_number(value: object) -> bool:
    # bool is an int subclass but never a meaningful limit/cost/ttl
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # int too large to convert to a float
        return False


def actual_limit(value: object) -> float:
    # Non-negative finite number, or math.inf for "unbounded"
    if not _finite_number(value):
        return math.inf
    return max(0, value)


def actual_cost(value: object) -> float:
    # Non-negative finite number; one when missing or unusable
    if not _finite_number(value):
        return 1
    return max(0, value)


def now_ms() -> float:
    # Monotonic clock so TTLs aren't affected by wall-clock changes
    return time.monotonic() * 1000.0


def ttl_to_expires(ttl: object) -> float:
    """Convert a TTL in milliseconds to an absolute expiration timestamp.

    Only integral values count as a TTL; anything else means the entry
    never expires (math.inf).
    """
    if not _finite_number(ttl) or not float(ttl).is_integer():
        return math.inf
    return now_ms() + ttl


def is_expired(expires_at: float) -> bool:
    return expires_at <= now_ms()
