"""Configuration and environment helpers for the cache.

Provides small helpers to read typed environment variables and exposes
package-level defaults (DEFAULT_LIMIT, LOG_LEVEL, LOG_JSON).
"""

from __future__ import annotations

import math
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_str(name: str, default: str) -> str:
    raw = (os.environ.get(name) or "").strip()
    return raw or default


# Capacity used by LRUCache() when no limit (and no cache source) is given
DEFAULT_LIMIT = _env_float("COSTLRU_DEFAULT_LIMIT", math.inf)

# Logging
LOG_LEVEL = _env_str("COSTLRU_LOG_LEVEL", "INFO").upper()
LOG_JSON = _env_bool("COSTLRU_LOG_JSON", False)
