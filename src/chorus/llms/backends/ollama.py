"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Ollama ``/api/generate`` backend over ``httpx``.

Unary calls post ``{model, prompt, stream: false}`` and read
``{"response": ...}``; streaming calls read newline-delimited chunks
``{"response": ..., "done": bool}`` until ``done`` is true.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from ..errors import (
    BackendInvalidResponseError,
    BackendStatusError,
    BackendTimeoutError,
    BackendUnavailableError,
)
from ..types import GenerateChunk, GenerateRequest

logger = logging.getLogger("chorus.backends.ollama")

DEFAULT_BASE_URL = "http://localhost:11434"
GENERATE_PATH = "/api/generate"


class OllamaBackend:
    """Generation backend talking to one Ollama server."""

    backend_id = "ollama"

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout_s: float | None = 180.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Content-Type": "application/json"},
                timeout=httpx.Timeout(self.timeout_s),
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client when this backend created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def generate(self, model: str, prompt: str) -> str:
        body = GenerateRequest(model=model, prompt=prompt, stream=False).to_payload()
        try:
            response = await self._get_client().post(GENERATE_PATH, json=body)
        except httpx.TimeoutException as exc:
            raise BackendTimeoutError(f"ollama timed out for model {model}") from exc
        except httpx.TransportError as exc:
            raise BackendUnavailableError(_unreachable_msg(self.base_url, model)) from exc

        if not response.is_success:
            logger.debug("ollama model=%s answered HTTP %d", model, response.status_code)
            raise BackendStatusError(response.status_code, response.text[:300])

        try:
            payload = response.json()
        except ValueError as exc:
            raise BackendInvalidResponseError("ollama returned invalid JSON") from exc
        return _extract_text(payload).strip()

    async def stream(self, model: str, prompt: str) -> AsyncIterator[str]:
        body = GenerateRequest(model=model, prompt=prompt, stream=True).to_payload()
        try:
            async with self._get_client().stream(
                "POST", GENERATE_PATH, json=body
            ) as response:
                if not response.is_success:
                    detail = (await response.aread()).decode("utf-8", errors="replace")
                    raise BackendStatusError(response.status_code, detail[:300])

                async for line in response.aiter_lines():
                    line = line.strip()
                    if not line:
                        continue
                    chunk = parse_chunk(line)
                    if chunk.response:
                        yield chunk.response
                    if chunk.done:
                        break
        except httpx.TimeoutException as exc:
            raise BackendTimeoutError(f"ollama stream timed out for model {model}") from exc
        except httpx.TransportError as exc:
            raise BackendUnavailableError(_unreachable_msg(self.base_url, model)) from exc


def parse_chunk(line: str) -> GenerateChunk:
    """Decode one NDJSON line of a streaming generation."""
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as exc:
        raise BackendInvalidResponseError(f"ollama stream decode error: {exc}") from exc
    if not isinstance(payload, dict):
        raise BackendInvalidResponseError("ollama stream chunk is not an object")
    text = payload.get("response", "")
    return GenerateChunk(
        response=text if isinstance(text, str) else "",
        done=bool(payload.get("done", False)),
    )


def _extract_text(payload: Any) -> str:
    if not isinstance(payload, dict):
        raise BackendInvalidResponseError("ollama response is not an object")
    text = payload.get("response")
    if not isinstance(text, str):
        raise BackendInvalidResponseError("ollama response missing response text")
    return text


def _unreachable_msg(base_url: str, model: str) -> str:
    return (
        f"Ollama not reachable at {base_url}. Start it with 'ollama serve' and "
        f"ensure model exists: 'ollama pull {model}'"
    )
