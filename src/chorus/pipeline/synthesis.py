"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Merge of the top-ranked candidates into one answer.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from ..errors import SynthesisError
from ..llms.backends.contracts import GenerationBackend
from ..llms.errors import BackendError
from ..llms.runtime.timeouts import Deadline, await_with_deadline, iter_until_deadline
from ..types import Candidate
from .prompts import build_synthesis_prompt

logger = logging.getLogger("chorus.pipeline.synthesis")


class FragmentSink(Protocol):
    """Receives merged-text fragments in arrival order."""

    async def accept(self, fragment: str) -> None: ...


class Synthesizer:
    """Asks one backend model to merge ranked answers."""

    def __init__(self, backend: GenerationBackend, *, model: str) -> None:
        self._backend = backend
        self.model = model

    async def merge(
        self,
        prompt: str,
        top: Sequence[Candidate],
        *,
        deadline: Deadline | None = None,
    ) -> str:
        """Atomic merge: one call, the whole stripped text or ``SynthesisError``."""
        try:
            merged = await await_with_deadline(
                self._backend.generate(self.model, build_synthesis_prompt(prompt, top)),
                deadline,
            )
        except BackendError as exc:
            raise SynthesisError(f"synthesis call failed: {exc}") from exc

        merged = merged.strip()
        if not merged:
            raise SynthesisError("synthesis returned empty text")
        return merged

    async def merge_stream(
        self,
        prompt: str,
        top: Sequence[Candidate],
        sink: FragmentSink,
        *,
        deadline: Deadline | None = None,
    ) -> str:
        """
        Incremental merge: forward fragments to ``sink`` as they arrive.

        Leading whitespace is dropped and trailing whitespace is held back
        until more text follows, so the forwarded fragments always join into
        exactly the stripped text ``merge`` would return. On failure the
        ``SynthesisError`` carries whatever was already forwarded.
        """
        parts: list[str] = []
        pending = ""
        stream = self._backend.stream(self.model, build_synthesis_prompt(prompt, top))
        try:
            async for piece in iter_until_deadline(stream, deadline):
                text = pending + piece
                if not parts:
                    text = text.lstrip()
                body = text.rstrip()
                pending = text[len(body):]
                if not body:
                    continue
                await sink.accept(body)
                parts.append(body)
        except BackendError as exc:
            raise SynthesisError(
                f"synthesis stream failed: {exc}", emitted="".join(parts)
            ) from exc

        if not parts:
            raise SynthesisError("synthesis returned empty text")
        logger.debug("Synthesis %s streamed %d fragments", self.model, len(parts))
        return "".join(parts)
