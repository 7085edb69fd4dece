"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

LLM-as-judge scoring of fan-out candidates.

The judge backend is asked for a JSON array ``[{"idx", "score", "notes"}]``.
Entries are validated one by one so a single malformed row does not discard
the rest. Ranking sorts by score descending; rows with equal scores keep the
order in which they appear in the validated judge output.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..errors import JudgeError
from ..llms.backends.contracts import GenerationBackend
from ..llms.errors import BackendError
from ..llms.runtime.timeouts import Deadline, await_with_deadline
from ..types import Candidate, ScoredCandidate
from .prompts import build_judge_prompt

logger = logging.getLogger("chorus.pipeline.judge")


class _JudgeEntry(BaseModel):
    idx: int
    score: float = Field(ge=0, le=10)
    notes: str | None = ""


class Judge:
    """Scores candidates through one designated backend model."""

    def __init__(self, backend: GenerationBackend, *, model: str) -> None:
        self._backend = backend
        self.model = model

    async def score(
        self,
        prompt: str,
        candidates: Sequence[Candidate],
        *,
        deadline: Deadline | None = None,
    ) -> list[ScoredCandidate]:
        """Return validated scores ranked best first; raise ``JudgeError`` otherwise."""
        if not candidates:
            raise JudgeError("no candidates")

        try:
            raw = await await_with_deadline(
                self._backend.generate(self.model, build_judge_prompt(prompt, candidates)),
                deadline,
            )
        except BackendError as exc:
            raise JudgeError(f"judge call failed: {exc}") from exc

        scores = parse_scores(raw, len(candidates))
        logger.debug("Judge %s scored %d/%d candidates", self.model, len(scores), len(candidates))
        return rank(scores)


def rank(scores: Sequence[ScoredCandidate]) -> list[ScoredCandidate]:
    """Sort descending by score; ``sorted`` is stable, so ties keep input order."""
    return sorted(scores, key=lambda s: s.score, reverse=True)


def parse_scores(raw: str, candidate_count: int) -> list[ScoredCandidate]:
    """
    Decode and validate judge output against ``candidate_count`` candidates.

    Rows with out-of-range or repeated indices, or that fail validation, are
    dropped. Raises ``JudgeError`` when nothing usable remains.
    """
    rows = _decode_array(raw)
    if rows is None:
        raise JudgeError(f"judge returned non-JSON: {raw[:200]}")

    out: list[ScoredCandidate] = []
    seen: set[int] = set()
    for row in rows:
        try:
            entry = _JudgeEntry.model_validate(row)
        except ValidationError:
            continue
        if not 0 <= entry.idx < candidate_count or entry.idx in seen:
            continue
        seen.add(entry.idx)
        out.append(ScoredCandidate(index=entry.idx, score=entry.score, notes=entry.notes or ""))

    if not out:
        raise JudgeError("judge produced no usable scores")
    return out


def _decode_array(raw: str) -> list[Any] | None:
    text = raw.strip()
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        fragment = extract_first_json_array(text)
        if fragment is None:
            return None
        try:
            parsed = json.loads(fragment)
        except json.JSONDecodeError:
            return None
    return parsed if isinstance(parsed, list) else None


def extract_first_json_array(text: str) -> str | None:
    """Return the first balanced ``[...]`` span, ignoring brackets inside strings."""
    depth = 0
    start = -1
    in_string = False
    escaped = False

    for idx, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "[":
            if depth == 0:
                start = idx
            depth += 1
        elif ch == "]" and depth > 0:
            depth -= 1
            if depth == 0:
                return text[start : idx + 1]

    return None
