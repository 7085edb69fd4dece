"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

This module defines the value types that flow through the answer pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, TypeAlias

from .errors import InvalidRequestError

Mode: TypeAlias = Literal["fast", "quality"]

MODES: tuple[Mode, ...] = ("fast", "quality")
DEFAULT_MODE: Mode = "fast"


def normalize_mode(value: Any) -> Mode:
    """Map any inbound mode value onto a known mode, defaulting to fast."""
    if isinstance(value, str) and value.strip().lower() == "quality":
        return "quality"
    return DEFAULT_MODE


@dataclass(frozen=True, slots=True)
class Candidate:
    """One backend's answer to a prompt plus its observed latency."""
    provider: str
    text: str
    latency_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "text": self.text,
            "latency_ms": self.latency_ms,
        }


@dataclass(frozen=True, slots=True)
class ScoredCandidate:
    """Judge verdict for the candidate at ``index`` in the judged list."""
    index: int
    score: float
    notes: str = ""


@dataclass(frozen=True, slots=True)
class AnswerRequest:
    """Validated inbound request."""

    prompt: str
    mode: Mode = DEFAULT_MODE

    @classmethod
    def from_payload(cls, payload: Any) -> "AnswerRequest":
        """
        Build a request from a decoded JSON body.

        Raises ``InvalidRequestError`` for non-object bodies and for prompts
        that are missing or blank after trimming.
        """
        if not isinstance(payload, dict):
            raise InvalidRequestError("bad json")
        prompt = payload.get("prompt")
        if not isinstance(prompt, str) or not prompt.strip():
            raise InvalidRequestError("prompt required")
        return cls(prompt=prompt.strip(), mode=normalize_mode(payload.get("mode")))


@dataclass(frozen=True, slots=True)
class AnswerResponse:
    """
    Final pipeline result.

    Instances are immutable; the exact value stored in the response cache is
    the one returned on a miss, and hits return a copy flagged ``cached``.
    """

    final: str
    candidates: tuple[Candidate, ...] = field(default_factory=tuple)
    cached: bool = False
    mode: Mode = DEFAULT_MODE

    def to_dict(self) -> dict[str, Any]:
        return {
            "final": self.final,
            "candidates": [c.to_dict() for c in self.candidates],
            "cached": self.cached,
            "mode": self.mode,
        }
