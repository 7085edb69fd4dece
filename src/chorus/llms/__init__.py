"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Backend-facing layer: generation transports, fan-out runtime and the
answer cache.
"""

from __future__ import annotations

from .backends import GenerationBackend, OllamaBackend
from .cache import InMemoryResponseCache, ResponseCache, cache_key
from .errors import (
    BackendError,
    BackendInvalidResponseError,
    BackendStatusError,
    BackendTimeoutError,
    BackendUnavailableError,
)
from .runtime import Deadline, FanOutResult, fan_out, gather_until
from .types import BackendDescriptor

__all__ = [
    "BackendDescriptor",
    "BackendError",
    "BackendInvalidResponseError",
    "BackendStatusError",
    "BackendTimeoutError",
    "BackendUnavailableError",
    "Deadline",
    "FanOutResult",
    "GenerationBackend",
    "InMemoryResponseCache",
    "OllamaBackend",
    "ResponseCache",
    "cache_key",
    "fan_out",
    "gather_until",
]
