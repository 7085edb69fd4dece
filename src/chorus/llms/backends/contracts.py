"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Backend contract consumed by the fan-out executor, judge and synthesizer.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol


class GenerationBackend(Protocol):
    """Text-generation service addressed by model identifier."""

    backend_id: str

    async def generate(self, model: str, prompt: str) -> str:
        """Return the complete generated text, stripped of outer whitespace."""
        ...

    def stream(self, model: str, prompt: str) -> AsyncIterator[str]:
        """Yield non-empty text fragments in arrival order."""
        ...

    async def aclose(self) -> None: ...
