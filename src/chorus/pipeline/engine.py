"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Answer pipeline shared by the synchronous and streaming delivery forms.

request -> cache lookup -> fan-out -> policy -> (heuristic pick | judge ->
top-k -> synthesis) -> cache store -> response. Both forms run the same
steps; the streaming form additionally reports progress and forwards
synthesis fragments into a ``StreamSession``.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from ..errors import JudgeError, SynthesisError, UpstreamUnavailableError
from ..llms.backends.contracts import GenerationBackend
from ..llms.cache.base import ResponseCache, cache_key
from ..llms.runtime.fanout import fan_out
from ..llms.runtime.timeouts import Deadline
from ..streaming import StreamSession
from ..types import AnswerRequest, AnswerResponse, Candidate
from .judge import Judge
from .policy import SelectionPolicy
from .registry import ModeProfile, ModeRegistry
from .synthesis import Synthesizer

logger = logging.getLogger("chorus.pipeline")

DEFAULT_JUDGE_MODEL = "llama3.2"


class AnswerPipeline:
    """
    Orchestrates one answer per request against a shared response cache.

    Args:
        backend: Generation backend used for fan-out, judging and synthesis.
        cache: Response cache owned by the caller and shared across requests.
        registry: Per-mode backends, deadlines and cache TTLs.
        policy: Selection policy knobs.
        judge_model: Model asked to score candidates.
        synth_model: Model asked to merge; defaults to ``judge_model``.
    """

    def __init__(
        self,
        *,
        backend: GenerationBackend,
        cache: ResponseCache,
        registry: ModeRegistry | None = None,
        policy: SelectionPolicy | None = None,
        judge_model: str = DEFAULT_JUDGE_MODEL,
        synth_model: str | None = None,
    ) -> None:
        self.backend = backend
        self.cache = cache
        self.registry = registry or ModeRegistry()
        self.policy = policy or SelectionPolicy()
        self.judge = Judge(backend, model=judge_model)
        self.synthesizer = Synthesizer(backend, model=synth_model or judge_model)

    async def answer(self, request: AnswerRequest) -> AnswerResponse:
        """Synchronous form: return the final response or raise ``UpstreamUnavailableError``."""
        return await self._execute(request, None)

    async def answer_stream(self, request: AnswerRequest, session: StreamSession) -> None:
        """
        Streaming form: drive ``session`` to exactly one terminal frame.

        Only an all-backends failure (or an unexpected crash) produces an
        ``error`` frame; every other failure degrades into the summary.
        """
        try:
            response = await self._execute(request, session)
        except UpstreamUnavailableError as exc:
            await session.fail(str(exc), code=exc.code)
        except Exception:
            logger.exception("Streaming pipeline crashed for mode=%s", request.mode)
            await session.fail("internal error", code="internal_error")
        else:
            await session.complete(response)
        finally:
            if session.terminal is not None:
                await session.close()

    async def _execute(
        self,
        request: AnswerRequest,
        session: StreamSession | None,
    ) -> AnswerResponse:
        profile = self.registry.resolve(request.mode)
        key = cache_key(request.prompt, profile.mode)

        hit = await self.cache.get(key)
        if hit is not None:
            logger.info("Cache hit mode=%s key=%s", profile.mode, key[:12])
            response = replace(hit, cached=True)
            await _status(session, "cache hit")
            await _delta(session, response.final)
            return response

        deadline = Deadline(profile.deadline_s)
        await _status(session, "running models...")
        result = await fan_out(self.backend, profile.backends, request.prompt, deadline)
        candidates = result.candidates
        if not candidates:
            raise UpstreamUnavailableError(
                _unavailable_msg(result.rate_limited),
                rate_limited=result.rate_limited,
            )
        logger.info(
            "Fan-out mode=%s collected %d/%d candidates",
            profile.mode,
            len(candidates),
            len(profile.backends),
        )

        final, cacheable = await self._select(request, profile, candidates, deadline, session)
        response = AnswerResponse(
            final=final,
            candidates=candidates,
            cached=False,
            mode=profile.mode,
        )
        if cacheable:
            await self.cache.set(key, response, ttl_s=profile.cache_ttl_s)
        return response

    async def _select(
        self,
        request: AnswerRequest,
        profile: ModeProfile,
        candidates: tuple[Candidate, ...],
        deadline: Deadline,
        session: StreamSession | None,
    ) -> tuple[str, bool]:
        """Return the final text and whether it may be cached."""
        if self.policy.should_shortcut(profile.mode, candidates):
            best = self.policy.heuristic_pick(candidates)
            note = "fast path (no judge)" if profile.mode == "fast" else "single candidate (no judge)"
            await _status(session, note)
            await _delta(session, best.text)
            return best.text, True

        await _status(session, "judging candidates...")
        try:
            ranked = await self.judge.score(request.prompt, candidates, deadline=deadline)
        except JudgeError as exc:
            logger.warning("Judge failed, using heuristic pick: %s", exc)
            best = self.policy.heuristic_pick(candidates)
            await _status(session, "judge failed; using best guess")
            await _delta(session, best.text)
            return best.text, True

        top = self.policy.top_k([candidates[s.index] for s in ranked])
        best_text = top[0].text
        if not self.policy.should_synthesize(profile.mode, top[0]):
            await _delta(session, best_text)
            return best_text, True

        await _status(session, "synthesizing...")
        try:
            if session is None:
                merged = await self.synthesizer.merge(request.prompt, top, deadline=deadline)
            else:
                merged = await self.synthesizer.merge_stream(
                    request.prompt, top, session, deadline=deadline
                )
        except SynthesisError as exc:
            logger.warning("Synthesis failed, falling back to top candidate: %s", exc)
            if exc.emitted:
                # Fragments already reached the caller and cannot be retracted.
                await _status(session, "synth interrupted; answer may be incomplete")
                return exc.emitted, False
            await _status(session, "synth failed; fallback to best candidate")
            await _delta(session, best_text)
            return best_text, True
        return merged, True


async def _status(session: StreamSession | None, text: str) -> None:
    if session is not None:
        await session.status(text)


async def _delta(session: StreamSession | None, text: str) -> None:
    if session is not None:
        await session.delta(text)


def _unavailable_msg(rate_limited: bool) -> str:
    if rate_limited:
        return "all model backends are rate limited; retry later"
    return "no model responses (is the generation backend running?)"
