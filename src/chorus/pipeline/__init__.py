"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: pipeline/__init__.py.
"""

from .engine import DEFAULT_JUDGE_MODEL, AnswerPipeline
from .judge import Judge, parse_scores, rank
from .policy import PolicyConfig, SelectionPolicy
from .registry import DEFAULT_PROFILES, ModeProfile, ModeRegistry
from .synthesis import FragmentSink, Synthesizer

__all__ = [
    "AnswerPipeline",
    "DEFAULT_JUDGE_MODEL",
    "DEFAULT_PROFILES",
    "FragmentSink",
    "Judge",
    "ModeProfile",
    "ModeRegistry",
    "PolicyConfig",
    "SelectionPolicy",
    "Synthesizer",
    "parse_scores",
    "rank",
]
