"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Prompt builders for the judge and synthesis calls.
"""

from __future__ import annotations

from collections.abc import Sequence

from ..types import Candidate

JUDGE_INSTRUCTIONS = (
    "You are a strict evaluator.\n"
    "Score each answer 0-10 for correctness + usefulness. Penalize hallucinations.\n"
    'Return ONLY valid JSON array like: [{"idx":0,"score":7,"notes":"..."}, ...]\n\n'
)

SYNTHESIS_INSTRUCTIONS = (
    "Combine the best parts of the answers below into ONE final answer.\n"
    "Rules: be correct, remove contradictions, be concise, no fluff.\n"
    "If a step-by-step explanation is helpful, include it.\n\n"
)


def build_judge_prompt(user_prompt: str, candidates: Sequence[Candidate]) -> str:
    parts = [JUDGE_INSTRUCTIONS, "User prompt:\n", user_prompt, "\n\nAnswers:\n"]
    for idx, candidate in enumerate(candidates):
        parts.append(f"\n[{idx}] ({candidate.provider})\n{candidate.text}\n")
    return "".join(parts)


def build_synthesis_prompt(user_prompt: str, top: Sequence[Candidate]) -> str:
    parts = [SYNTHESIS_INSTRUCTIONS, "User prompt:\n", user_prompt, "\n\nAnswers:\n"]
    for candidate in top:
        parts.append(f"\n---\n{candidate.provider}:\n{candidate.text}\n")
    return "".join(parts)
