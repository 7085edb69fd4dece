"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/__init__.py.
"""

from .base import CacheEntry, ResponseCache, cache_key
from .inmemory import InMemoryResponseCache
from .locking import ReadWriteLock

__all__ = [
    "CacheEntry",
    "ResponseCache",
    "InMemoryResponseCache",
    "ReadWriteLock",
    "cache_key",
]
