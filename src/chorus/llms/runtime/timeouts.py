"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: runtime/timeouts.py.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TypeVar

from ..errors import BackendTimeoutError

T = TypeVar("T")


class Deadline:
    """
    One-shot expiry shared by every backend call of a pipeline execution.

    The budget is consumed cumulatively: fan-out, judge and synthesis all
    read ``remaining()`` from the same instance.
    """

    def __init__(
        self,
        timeout_s: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self.timeout_s = timeout_s
        self.expires_at = clock() + timeout_s

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0


async def await_with_deadline(awaitable: Awaitable[T], deadline: Deadline | None) -> T:
    """Await value, raising ``BackendTimeoutError`` once the deadline passes."""
    if deadline is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=deadline.remaining())
    except asyncio.TimeoutError as exc:
        raise BackendTimeoutError("pipeline deadline exceeded") from exc


async def iter_until_deadline(
    stream: AsyncIterator[T],
    deadline: Deadline | None,
) -> AsyncIterator[T]:
    """Wrap stream iteration so every item must arrive before the deadline."""
    if deadline is None:
        async for item in stream:
            yield item
        return

    try:
        while True:
            try:
                item = await asyncio.wait_for(anext(stream), timeout=deadline.remaining())
            except StopAsyncIteration:
                return
            except asyncio.TimeoutError as exc:
                raise BackendTimeoutError("pipeline deadline exceeded") from exc
            yield item
    finally:
        aclose = getattr(stream, "aclose", None)
        if aclose is not None:
            await aclose()
