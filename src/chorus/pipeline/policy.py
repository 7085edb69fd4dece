"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Selection policy: when to skip judging, and how to pick without a judge.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from ..types import Candidate, Mode


@dataclass(frozen=True, slots=True)
class PolicyConfig:
    """
    Heuristic knobs of the selection policy.

    Attributes:
        shortcut_length_delta: Fast mode skips judging when the two fastest
            answers differ in length by less than this many characters.
        newline_margin: A later candidate replaces the heuristic pick only
            when it has more than this many extra line breaks.
        fast_synthesis_max_chars: Fast mode merges only when the top-ranked
            answer is shorter than this; ``None`` always merges.
        top_k: How many ranked candidates are handed to the synthesizer.
    """

    shortcut_length_delta: int = 350
    newline_margin: int = 1
    fast_synthesis_max_chars: int | None = 500
    top_k: int = 2


class SelectionPolicy:
    """Mode-dependent decisions taken between fan-out and synthesis."""

    def __init__(self, config: PolicyConfig | None = None) -> None:
        self.config = config or PolicyConfig()

    def should_shortcut(self, mode: Mode, candidates: Sequence[Candidate]) -> bool:
        """Whether to return the heuristic pick instead of judging."""
        if len(candidates) < 2:
            return True
        if mode != "fast":
            return False
        first, second = candidates[0], candidates[1]
        return abs(len(first.text) - len(second.text)) < self.config.shortcut_length_delta

    def heuristic_pick(self, candidates: Sequence[Candidate]) -> Candidate:
        """
        Prefer the answer with materially more structure (line breaks).

        Candidates arrive in latency order, so on a tie the faster one wins.
        """
        if not candidates:
            raise ValueError("heuristic_pick needs at least one candidate")
        best = candidates[0]
        best_lines = best.text.count("\n")
        for candidate in candidates[1:]:
            lines = candidate.text.count("\n")
            if lines > best_lines + self.config.newline_margin:
                best = candidate
                best_lines = lines
        return best

    def should_synthesize(self, mode: Mode, top: Candidate) -> bool:
        """Whether the ranked answers should be merged at all."""
        if mode != "fast":
            return True
        limit = self.config.fast_synthesis_max_chars
        return limit is None or len(top.text) < limit

    def top_k(self, ranked: Sequence[Candidate]) -> list[Candidate]:
        return list(ranked[: max(1, self.config.top_k)])
