from __future__ import annotations

import asyncio
import json

import pytest

from chorus.errors import JudgeError
from chorus.llms.errors import BackendUnavailableError
from chorus.pipeline import Judge, parse_scores, rank
from chorus.pipeline.judge import extract_first_json_array
from chorus.pipeline.prompts import JUDGE_INSTRUCTIONS
from chorus.types import Candidate, ScoredCandidate


def run_async(coro):
    return asyncio.run(coro)


class _JudgeBackend:
    backend_id = "judge"

    def __init__(self, reply):
        self.reply = reply
        self.calls: list[tuple[str, str]] = []

    async def generate(self, model: str, prompt: str) -> str:
        self.calls.append((model, prompt))
        if isinstance(self.reply, BaseException):
            raise self.reply
        return self.reply

    async def stream(self, model: str, prompt: str):
        yield self.reply

    async def aclose(self) -> None:
        return None


CANDIDATES = (
    Candidate(provider="A", text="answer a", latency_ms=1),
    Candidate(provider="B", text="answer b", latency_ms=2),
    Candidate(provider="C", text="answer c", latency_ms=3),
)


def _scores(*rows) -> str:
    return json.dumps([{"idx": i, "score": s, "notes": ""} for i, s in rows])


def test_judge_ranks_candidates_by_score():
    backend = _JudgeBackend(_scores((0, 3), (1, 9), (2, 5)))
    judge = Judge(backend, model="judge-model")

    ranked = run_async(judge.score("question", CANDIDATES))

    assert [CANDIDATES[s.index].provider for s in ranked] == ["B", "C", "A"]
    model, prompt = backend.calls[0]
    assert model == "judge-model"
    assert prompt.startswith(JUDGE_INSTRUCTIONS)
    assert "[1] (B)\nanswer b" in prompt
    assert "User prompt:\nquestion" in prompt


def test_rank_keeps_judge_order_for_equal_scores():
    scores = [
        ScoredCandidate(index=2, score=7),
        ScoredCandidate(index=0, score=7),
        ScoredCandidate(index=1, score=8),
    ]

    assert [s.index for s in rank(scores)] == [1, 2, 0]


def test_parse_scores_extracts_array_from_prose():
    raw = 'Sure! Here you go:\n[{"idx": 0, "score": 6, "notes": "ok [mostly]"}]\nThanks.'

    scores = parse_scores(raw, 1)

    assert scores == [ScoredCandidate(index=0, score=6.0, notes="ok [mostly]")]


def test_parse_scores_drops_invalid_duplicate_and_out_of_range_rows():
    raw = json.dumps(
        [
            {"idx": 0, "score": 4},
            {"idx": 0, "score": 10},
            {"idx": 7, "score": 9},
            {"idx": -1, "score": 9},
            {"idx": 1, "score": 42},
            {"idx": 2, "score": "high"},
            "garbage",
            {"idx": 1, "score": 8, "notes": None},
        ]
    )

    scores = parse_scores(raw, 3)

    assert [(s.index, s.score) for s in scores] == [(0, 4.0), (1, 8.0)]
    assert scores[1].notes == ""


@pytest.mark.parametrize("raw", ["not json at all", '{"idx": 0, "score": 5}', "[]", "[1, 2]"])
def test_parse_scores_rejects_unusable_output(raw):
    with pytest.raises(JudgeError):
        parse_scores(raw, 2)


def test_judge_wraps_backend_failures():
    judge = Judge(_JudgeBackend(BackendUnavailableError("down")), model="j")

    with pytest.raises(JudgeError):
        run_async(judge.score("q", CANDIDATES))


def test_judge_rejects_empty_candidate_list():
    backend = _JudgeBackend("[]")

    with pytest.raises(JudgeError):
        run_async(Judge(backend, model="j").score("q", ()))
    assert backend.calls == []


def test_extract_first_json_array_handles_nesting_and_strings():
    text = 'noise "[not this]" [[1, 2], {"k": "]"}] tail [3]'

    assert extract_first_json_array(text) == '[[1, 2], {"k": "]"}]'
    assert extract_first_json_array("no brackets") is None
    assert extract_first_json_array("[unterminated") is None
