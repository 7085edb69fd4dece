"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

chorus: answer a prompt with several generation backends at once, judge
and merge their outputs, cache the result and stream the merge.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .errors import (
    ChorusError,
    InvalidRequestError,
    JudgeError,
    StreamProtocolError,
    SynthesisError,
    UpstreamUnavailableError,
)
from .llms import (
    BackendDescriptor,
    Deadline,
    GenerationBackend,
    InMemoryResponseCache,
    OllamaBackend,
    ResponseCache,
    cache_key,
)
from .pipeline import (
    AnswerPipeline,
    ModeProfile,
    ModeRegistry,
    PolicyConfig,
    SelectionPolicy,
)
from .settings import ChorusSettings
from .streaming import StreamFrame, StreamSession
from .types import AnswerRequest, AnswerResponse, Candidate, ScoredCandidate

__all__ = [
    "__version__",
    "AnswerPipeline",
    "AnswerRequest",
    "AnswerResponse",
    "BackendDescriptor",
    "Candidate",
    "ChorusError",
    "ChorusSettings",
    "Deadline",
    "GenerationBackend",
    "InMemoryResponseCache",
    "InvalidRequestError",
    "JudgeError",
    "ModeProfile",
    "ModeRegistry",
    "OllamaBackend",
    "PolicyConfig",
    "ResponseCache",
    "ScoredCandidate",
    "SelectionPolicy",
    "StreamFrame",
    "StreamProtocolError",
    "StreamSession",
    "SynthesisError",
    "UpstreamUnavailableError",
    "cache_key",
]
