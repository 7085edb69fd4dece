from __future__ import annotations

import asyncio
import time

import pytest

from chorus.llms.errors import (
    BackendStatusError,
    BackendTimeoutError,
    BackendUnavailableError,
)
from chorus.llms.runtime import (
    ANSWER_PREAMBLE,
    Deadline,
    await_with_deadline,
    fan_out,
    gather_until,
    iter_until_deadline,
)
from chorus.llms.types import BackendDescriptor


def run_async(coro):
    return asyncio.run(coro)


class _DelayedBackend:
    """Answers per model after a per-model delay; values may be exceptions."""

    backend_id = "delayed"

    def __init__(self, answers, delays=None):
        self.answers = answers
        self.delays = delays or {}
        self.prompts: list[tuple[str, str]] = []
        self.cancelled: list[str] = []

    async def generate(self, model: str, prompt: str) -> str:
        self.prompts.append((model, prompt))
        try:
            await asyncio.sleep(self.delays.get(model, 0))
        except asyncio.CancelledError:
            self.cancelled.append(model)
            raise
        answer = self.answers[model]
        if isinstance(answer, BaseException):
            raise answer
        return answer

    async def stream(self, model: str, prompt: str):
        yield self.answers[model]

    async def aclose(self) -> None:
        return None


def _descriptors(*models: str) -> list[BackendDescriptor]:
    return [BackendDescriptor.parse(m) for m in models]


def test_fan_out_orders_candidates_by_latency_and_frames_prompt():
    backend = _DelayedBackend(
        {"slow": "slow answer", "quick": "quick answer"},
        delays={"slow": 0.08, "quick": 0.0},
    )

    result = run_async(fan_out(backend, _descriptors("slow", "quick"), "why?", Deadline(5)))

    assert [c.provider for c in result.candidates] == ["quick", "slow"]
    assert result.candidates[0].latency_ms <= result.candidates[1].latency_ms
    assert result.failures == ()
    assert all(prompt == ANSWER_PREAMBLE + "why?" for _, prompt in backend.prompts)


def test_fan_out_drops_failures_and_empty_answers():
    backend = _DelayedBackend(
        {
            "ok": "fine",
            "down": BackendUnavailableError("refused"),
            "blank": "   ",
            "boom": OSError("reset"),
        }
    )

    result = run_async(
        fan_out(backend, _descriptors("ok", "down", "blank", "boom"), "q", Deadline(5))
    )

    assert [c.provider for c in result.candidates] == ["ok"]
    assert [name for name, _ in result.failures] == ["down", "blank", "boom"]
    assert isinstance(dict(result.failures)["boom"], BackendUnavailableError)
    assert result.rate_limited is False


def test_fan_out_uses_display_name_from_descriptor():
    backend = _DelayedBackend({"llama3.2:1b": "hi"})

    result = run_async(fan_out(backend, _descriptors("llama=llama3.2:1b"), "q", Deadline(5)))

    assert result.candidates[0].provider == "llama"
    assert backend.prompts[0][0] == "llama3.2:1b"


def test_fan_out_abandons_backends_still_running_at_deadline():
    backend = _DelayedBackend(
        {"quick": "done", "stuck": "never seen"},
        delays={"stuck": 10.0},
    )

    started = time.monotonic()
    result = run_async(fan_out(backend, _descriptors("quick", "stuck"), "q", Deadline(0.2)))
    elapsed = time.monotonic() - started

    assert elapsed < 5.0
    assert [c.provider for c in result.candidates] == ["quick"]
    assert [name for name, _ in result.failures] == ["stuck"]
    assert isinstance(result.failures[0][1], BackendTimeoutError)
    assert backend.cancelled == ["stuck"]


def test_rate_limited_only_when_every_backend_was_throttled():
    throttled = _DelayedBackend(
        {"a": BackendStatusError(429, "slow down"), "b": BackendStatusError(429)}
    )
    mixed = _DelayedBackend(
        {"a": BackendStatusError(429), "b": BackendStatusError(500, "oops")}
    )

    all_429 = run_async(fan_out(throttled, _descriptors("a", "b"), "q", Deadline(5)))
    some_429 = run_async(fan_out(mixed, _descriptors("a", "b"), "q", Deadline(5)))

    assert all_429.candidates == ()
    assert all_429.rate_limited is True
    assert some_429.rate_limited is False


def test_gather_until_keeps_factory_order_and_captures_errors():
    async def value(v, delay):
        await asyncio.sleep(delay)
        return v

    async def failing():
        raise ValueError("bad")

    outcomes = run_async(
        gather_until(
            [lambda: value("first", 0.05), failing, lambda: value("third", 0.0)],
            Deadline(5),
        )
    )

    assert [o.ok for o in outcomes] == [True, False, True]
    assert outcomes[0].value == "first"
    assert outcomes[2].value == "third"
    assert isinstance(outcomes[1].error, ValueError)


def test_gather_until_with_no_factories_returns_empty():
    assert run_async(gather_until([], Deadline(1))) == []


def test_deadline_budget_is_consumed_cumulatively():
    now = [100.0]
    deadline = Deadline(10, clock=lambda: now[0])

    assert deadline.remaining() == 10
    now[0] += 4
    assert deadline.remaining() == 6
    now[0] += 7
    assert deadline.remaining() == 0.0
    assert deadline.expired is True


def test_await_with_deadline_raises_backend_timeout():
    async def scenario():
        await await_with_deadline(asyncio.sleep(5), Deadline(0.05))

    with pytest.raises(BackendTimeoutError):
        run_async(scenario())


def test_iter_until_deadline_stops_slow_streams():
    async def slow_stream():
        yield "a"
        await asyncio.sleep(5)
        yield "b"

    async def scenario(collected):
        async for item in iter_until_deadline(slow_stream(), Deadline(0.1)):
            collected.append(item)

    collected: list[str] = []
    with pytest.raises(BackendTimeoutError):
        run_async(scenario(collected))
    assert collected == ["a"]


def test_iter_until_deadline_without_deadline_passes_through():
    async def items():
        for item in ("x", "y"):
            yield item

    async def scenario():
        return [item async for item in iter_until_deadline(items(), None)]

    assert run_async(scenario()) == ["x", "y"]


def test_failures_with_shared_display_name_are_all_kept():
    backend = _DelayedBackend(
        {"model-a": BackendStatusError(500, "oops"), "model-b": BackendStatusError(429)}
    )

    result = run_async(
        fan_out(backend, _descriptors("x=model-a", "x=model-b"), "q", Deadline(5))
    )

    assert [name for name, _ in result.failures] == ["x", "x"]
    assert [err.status_code for _, err in result.failures] == [500, 429]
    assert result.rate_limited is False
