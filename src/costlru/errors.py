from __future__ import annotations


class CacheError(Exception):
    """Base error for the cache package."""


class ReadThroughError(CacheError):
    """Raised when a cache miss cannot start its resolver (no running event loop)."""
