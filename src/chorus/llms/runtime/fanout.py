"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Concurrent fan-out of one prompt to every backend of a mode.

``gather_until`` is the generic scatter/gather primitive: one task per
factory, a single fan-in barrier that releases when every task finished or
the shared deadline elapsed. ``fan_out`` applies it to generation backends
and turns the surviving outcomes into latency-ordered candidates.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from ...types import Candidate
from ..backends.contracts import GenerationBackend
from ..errors import BackendError, BackendTimeoutError, classify_error, is_rate_limited
from ..types import BackendDescriptor
from .timeouts import Deadline

logger = logging.getLogger("chorus.runtime.fanout")

T = TypeVar("T")

ANSWER_PREAMBLE = (
    "Answer the user clearly and directly.\n"
    "Prefer correct, concise explanations and practical examples when helpful.\n\n"
    "User:\n"
)


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result slot of one gathered task: either ``value`` or ``error``."""
    value: object | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class FanOutResult:
    """
    Candidates sorted by latency plus the failures that were dropped.

    ``failures`` holds one ``(provider, error)`` pair per failed backend in
    registry order; provider names need not be unique.
    """
    candidates: tuple[Candidate, ...] = ()
    failures: tuple[tuple[str, BackendError], ...] = ()

    @property
    def rate_limited(self) -> bool:
        """True when every backend failed and all of them were rate limited."""
        return (
            not self.candidates
            and bool(self.failures)
            and all(is_rate_limited(err) for _, err in self.failures)
        )


async def gather_until(
    factories: Sequence[Callable[[], Awaitable[T]]],
    deadline: Deadline,
) -> list[Outcome]:
    """
    Run every factory concurrently and wait until all finish or time runs out.

    Tasks still pending at the deadline are cancelled and reported as
    ``BackendTimeoutError``; their eventual results are never observed.
    """
    tasks = [asyncio.create_task(factory()) for factory in factories]
    if not tasks:
        return []

    try:
        _, pending = await asyncio.wait(tasks, timeout=deadline.remaining())
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    outcomes: list[Outcome] = []
    for task in tasks:
        if task in pending or task.cancelled():
            outcomes.append(Outcome(error=BackendTimeoutError("abandoned at deadline")))
            continue
        error = task.exception()
        if error is not None:
            outcomes.append(Outcome(error=error))
        else:
            outcomes.append(Outcome(value=task.result()))
    return outcomes


async def fan_out(
    backend: GenerationBackend,
    descriptors: Sequence[BackendDescriptor],
    prompt: str,
    deadline: Deadline,
) -> FanOutResult:
    """Ask every descriptor's model for an answer and collect the valid ones."""
    framed = ANSWER_PREAMBLE + prompt

    def _call(descriptor: BackendDescriptor) -> Callable[[], Awaitable[Candidate]]:
        async def _run() -> Candidate:
            start = time.perf_counter()
            text = await backend.generate(descriptor.model, framed)
            latency_ms = int((time.perf_counter() - start) * 1000)
            if not text.strip():
                raise BackendError(f"{descriptor.name} returned empty text")
            return Candidate(provider=descriptor.name, text=text, latency_ms=latency_ms)

        return _run

    outcomes = await gather_until([_call(d) for d in descriptors], deadline)

    candidates: list[Candidate] = []
    failures: list[tuple[str, BackendError]] = []
    for descriptor, outcome in zip(descriptors, outcomes):
        if outcome.ok:
            candidates.append(outcome.value)  # type: ignore[arg-type]
            continue
        error = classify_error(outcome.error)  # type: ignore[arg-type]
        failures.append((descriptor.name, error))
        logger.warning("Backend %s dropped: %s", descriptor.name, error)

    candidates.sort(key=lambda c: c.latency_ms)
    return FanOutResult(candidates=tuple(candidates), failures=tuple(failures))
