"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/base.py.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Protocol

from ...types import AnswerResponse


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """One cached answer with its expiry instant."""
    value: AnswerResponse
    expires_at_s: float


class ResponseCache(Protocol):
    """Protocol implemented by answer cache backends."""
    backend_id: str

    async def get(self, key: str) -> AnswerResponse | None: ...

    async def set(self, key: str, value: AnswerResponse, *, ttl_s: float) -> None: ...

    async def delete(self, key: str) -> None: ...


def cache_key(prompt: str, mode: str) -> str:
    """Deterministic key for one (mode, trimmed prompt) pair."""
    normalized = f"{mode}::{prompt.strip()}"
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()
