"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

FastAPI service exposing the answer pipeline.

Endpoints:
    ``POST /answer``: one JSON response ``{final, candidates, cached, mode}``
    ``POST /answer/stream``: NDJSON frame stream (status/delta/error/summary)
    ``GET /health``: liveness probe
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

from . import __version__
from .errors import InvalidRequestError, UpstreamUnavailableError
from .llms.backends.contracts import GenerationBackend
from .llms.backends.ollama import OllamaBackend
from .llms.cache.base import ResponseCache
from .llms.cache.inmemory import InMemoryResponseCache
from .pipeline.engine import AnswerPipeline
from .pipeline.policy import SelectionPolicy
from .settings import ChorusSettings
from .streaming import StreamSession
from .types import AnswerRequest

logger = logging.getLogger("chorus.server")

NDJSON_MEDIA_TYPE = "application/x-ndjson; charset=utf-8"

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


class AnswerServer:
    """
    Owns one pipeline (and therefore one response cache) for the app lifetime.

    Usage::

        server = AnswerServer(ChorusSettings.from_env())
        server.run()  # starts uvicorn on settings.host:settings.port

    Args:
        settings: Service settings; defaults to ``ChorusSettings()``.
        backend: Generation backend; defaults to an ``OllamaBackend``.
        cache: Response cache; defaults to a fresh in-memory cache.
    """

    def __init__(
        self,
        settings: ChorusSettings | None = None,
        *,
        backend: GenerationBackend | None = None,
        cache: ResponseCache | None = None,
    ) -> None:
        self.settings = settings or ChorusSettings()
        self.backend = backend or OllamaBackend(
            self.settings.ollama_url,
            timeout_s=self.settings.backend_timeout_s,
        )
        self.cache = cache or InMemoryResponseCache()
        self.pipeline = AnswerPipeline(
            backend=self.backend,
            cache=self.cache,
            registry=self.settings.to_registry(),
            policy=SelectionPolicy(self.settings.to_policy_config()),
            judge_model=self.settings.judge_model,
            synth_model=self.settings.synth_model,
        )
        self._app = self._create_app()

    @property
    def app(self) -> FastAPI:
        return self._app

    async def _read_request(self, request: Request) -> AnswerRequest:
        try:
            payload = await request.json()
        except ValueError as exc:
            raise InvalidRequestError("bad json") from exc
        return AnswerRequest.from_payload(payload)

    def _create_router(self) -> APIRouter:
        router = APIRouter()

        @router.get("/health")
        async def health() -> dict[str, Any]:
            return {
                "status": "ok",
                "service": self.settings.service_name,
                "version": __version__,
            }

        @router.post("/answer")
        async def answer(request: Request):
            try:
                req = await self._read_request(request)
            except InvalidRequestError as exc:
                return _error(400, str(exc))

            try:
                response = await self.pipeline.answer(req)
            except UpstreamUnavailableError as exc:
                logger.error("Answer failed mode=%s: %s", req.mode, exc)
                return _error(429 if exc.rate_limited else 502, str(exc))
            return JSONResponse(response.to_dict(), status_code=200)

        @router.post("/answer/stream")
        async def answer_stream(request: Request):
            try:
                req = await self._read_request(request)
            except InvalidRequestError as exc:
                return _error(400, str(exc))

            return StreamingResponse(
                self._stream_frames(req),
                media_type=NDJSON_MEDIA_TYPE,
                headers=STREAM_HEADERS,
            )

        return router

    async def _stream_frames(self, req: AnswerRequest) -> AsyncIterator[str]:
        session = StreamSession()
        producer = asyncio.create_task(self.pipeline.answer_stream(req, session))
        try:
            async for frame in session:
                yield frame.encode()
        finally:
            if not producer.done():
                producer.cancel()
            await asyncio.gather(producer, return_exceptions=True)

    def _create_app(self) -> FastAPI:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            logger.info(
                "%s ready (backend=%s, judge=%s)",
                self.settings.service_name,
                self.backend.backend_id,
                self.settings.judge_model,
            )
            yield
            await self.backend.aclose()

        app = FastAPI(
            title=self.settings.service_name,
            description="Multi-backend answer ensemble",
            lifespan=lifespan,
        )
        app.include_router(self._create_router())
        return app

    def run(self, **kwargs: Any) -> None:
        """Start the service with uvicorn."""
        import uvicorn

        uvicorn.run(
            self._app,
            host=kwargs.pop("host", self.settings.host),
            port=kwargs.pop("port", self.settings.port),
            **kwargs,
        )


def create_app(
    settings: ChorusSettings | None = None,
    *,
    backend: GenerationBackend | None = None,
    cache: ResponseCache | None = None,
) -> FastAPI:
    """Build a ready-to-serve FastAPI app."""
    return AnswerServer(settings, backend=backend, cache=cache).app


def run() -> None:
    """Console entrypoint: configure logging and serve from environment settings."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    AnswerServer(ChorusSettings.from_env()).run()
