from __future__ import annotations

import asyncio

import pytest

from chorus.errors import SynthesisError
from chorus.llms.errors import BackendStatusError, BackendUnavailableError
from chorus.llms.runtime import Deadline
from chorus.pipeline import Synthesizer
from chorus.pipeline.prompts import SYNTHESIS_INSTRUCTIONS
from chorus.types import Candidate


def run_async(coro):
    return asyncio.run(coro)


class _MergeBackend:
    backend_id = "merge"

    def __init__(self, chunks=(), *, error: BaseException | None = None, delay: float = 0.0):
        self.chunks = list(chunks)
        self.error = error
        self.delay = delay
        self.prompts: list[str] = []

    async def generate(self, model: str, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return "".join(self.chunks)

    async def stream(self, model: str, prompt: str):
        self.prompts.append(prompt)
        for chunk in self.chunks:
            await asyncio.sleep(self.delay)
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self) -> None:
        return None


class _Sink:
    def __init__(self) -> None:
        self.fragments: list[str] = []

    async def accept(self, fragment: str) -> None:
        self.fragments.append(fragment)


TOP = (
    Candidate(provider="B", text="best answer", latency_ms=10),
    Candidate(provider="C", text="runner up", latency_ms=5),
)


def test_merge_strips_and_builds_prompt_in_rank_order():
    backend = _MergeBackend(["\n  merged text  \n"])

    merged = run_async(Synthesizer(backend, model="s").merge("question", TOP))

    assert merged == "merged text"
    prompt = backend.prompts[0]
    assert prompt.startswith(SYNTHESIS_INSTRUCTIONS)
    assert prompt.index("B:\nbest answer") < prompt.index("C:\nrunner up")


def test_merge_rejects_empty_output_and_backend_errors():
    with pytest.raises(SynthesisError):
        run_async(Synthesizer(_MergeBackend(["   "]), model="s").merge("q", TOP))
    with pytest.raises(SynthesisError) as info:
        run_async(
            Synthesizer(_MergeBackend(error=BackendStatusError(500)), model="s").merge("q", TOP)
        )
    assert info.value.emitted == ""


def test_merge_stream_forwards_fragments_matching_atomic_merge():
    chunks = ["\n ", "  Hello", " ", "", "wor", "ld  ", "\n"]
    sink = _Sink()
    synth = Synthesizer(_MergeBackend(chunks), model="s")

    streamed = run_async(synth.merge_stream("q", TOP, sink))
    atomic = run_async(Synthesizer(_MergeBackend(chunks), model="s").merge("q", TOP))

    assert streamed == atomic == "Hello world"
    assert "".join(sink.fragments) == streamed
    assert all(sink.fragments)


def test_merge_stream_failure_reports_emitted_text():
    backend = _MergeBackend(["Partial", " answer "], error=BackendUnavailableError("reset"))
    sink = _Sink()

    with pytest.raises(SynthesisError) as info:
        run_async(Synthesizer(backend, model="s").merge_stream("q", TOP, sink))

    assert info.value.emitted == "Partial answer"
    assert "".join(sink.fragments) == "Partial answer"


def test_merge_stream_with_only_whitespace_fails_without_emitting():
    sink = _Sink()

    with pytest.raises(SynthesisError) as info:
        run_async(
            Synthesizer(_MergeBackend([" ", "\n"]), model="s").merge_stream("q", TOP, sink)
        )

    assert info.value.emitted == ""
    assert sink.fragments == []


def test_merge_stream_honours_deadline():
    backend = _MergeBackend(["a", "b", "c"], delay=1.0)
    sink = _Sink()

    with pytest.raises(SynthesisError):
        run_async(
            Synthesizer(backend, model="s").merge_stream("q", TOP, sink, deadline=Deadline(0.1))
        )
    assert sink.fragments == []
