"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Wire-level types shared by generation backends.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class BackendDescriptor:
    """Provider display name plus the model identifier sent on the wire."""
    name: str
    model: str

    @staticmethod
    def parse(value: str) -> "BackendDescriptor":
        """Parse ``name=model`` or a bare ``model`` (name defaults to model)."""
        name, sep, model = value.strip().partition("=")
        if not sep:
            return BackendDescriptor(name=name, model=name)
        return BackendDescriptor(name=name.strip(), model=model.strip())


@dataclass(frozen=True, slots=True)
class GenerateRequest:
    """Body of one ``/api/generate`` call."""
    model: str
    prompt: str
    stream: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {"model": self.model, "prompt": self.prompt, "stream": self.stream}


@dataclass(frozen=True, slots=True)
class GenerateChunk:
    """One NDJSON line of a streaming generation."""
    response: str = ""
    done: bool = False
