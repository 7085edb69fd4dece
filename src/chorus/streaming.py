"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Frame protocol for incremental answer delivery.

A session is an ordered sequence of ``status`` and ``delta`` frames closed
by exactly one terminal frame: ``summary`` on success or ``error`` on a
caller-visible failure. Concatenating every ``delta`` payload of a
successful session yields ``summary.final``.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, AsyncIterator, Literal

from .errors import StreamProtocolError
from .types import AnswerResponse

# ---------------------------------------------------------------------------
# Frame types
# ---------------------------------------------------------------------------

FrameType = Literal["status", "delta", "error", "summary"]

TERMINAL_FRAMES: frozenset[str] = frozenset({"error", "summary"})


@dataclass(frozen=True, slots=True)
class StreamFrame:
    """
    A single frame of a streaming answer session.

    Attributes:
        type: Frame category.
        text: Progress note, text fragment or error message.
        code: Machine-readable error code (``error`` frames only).
        summary: Final response (``summary`` frames only).
    """

    type: FrameType
    text: str | None = None
    code: str | None = None
    summary: AnswerResponse | None = None

    @property
    def terminal(self) -> bool:
        return self.type in TERMINAL_FRAMES

    def to_dict(self) -> dict[str, Any]:
        if self.type == "summary" and self.summary is not None:
            return {"type": "summary", "summary": self.summary.to_dict()}
        out: dict[str, Any] = {"type": self.type, "text": self.text or ""}
        if self.code is not None:
            out["code"] = self.code
        return out

    def encode(self) -> str:
        """One NDJSON line, newline included."""
        return json.dumps(self.to_dict(), ensure_ascii=False) + "\n"


# ---------------------------------------------------------------------------
# Convenience constructors
# ---------------------------------------------------------------------------


def status_frame(text: str) -> StreamFrame:
    return StreamFrame(type="status", text=text)


def delta_frame(text: str) -> StreamFrame:
    return StreamFrame(type="delta", text=text)


def error_frame(text: str, *, code: str | None = None) -> StreamFrame:
    return StreamFrame(type="error", text=text, code=code)


def summary_frame(response: AnswerResponse) -> StreamFrame:
    return StreamFrame(type="summary", summary=response)


def decode_frame(line: str) -> dict[str, Any]:
    """Parse one wire line back into its JSON object."""
    payload = json.loads(line)
    if not isinstance(payload, dict) or payload.get("type") not in (
        "status",
        "delta",
        "error",
        "summary",
    ):
        raise StreamProtocolError(f"Not a stream frame: {line!r}")
    return payload


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

_STREAM_END = object()


class StreamSession:
    """
    Single-producer / single-consumer frame channel.

    The pipeline emits frames (and, as a ``FragmentSink``, synthesis
    fragments) while the transport drains them with ``async for``. The
    session rejects anything that would break the frame grammar.

    Usage::

        session = StreamSession()
        producer = asyncio.create_task(pipeline.answer_stream(request, session))
        async for frame in session:
            write(frame.encode())
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._terminal: StreamFrame | None = None
        self._deltas: list[str] = []
        self._closed = False
        self._consumed = False

    async def emit(self, frame: StreamFrame) -> None:
        if self._closed:
            raise StreamProtocolError("Stream session already closed")
        if self._terminal is not None:
            raise StreamProtocolError(
                f"Cannot emit '{frame.type}' after terminal '{self._terminal.type}' frame"
            )
        if frame.type == "delta":
            if not frame.text:
                return
            self._deltas.append(frame.text)
        if frame.terminal:
            self._terminal = frame
        await self._queue.put(frame)

    async def status(self, text: str) -> None:
        await self.emit(status_frame(text))

    async def delta(self, text: str) -> None:
        await self.emit(delta_frame(text))

    async def accept(self, fragment: str) -> None:
        """``FragmentSink`` entrypoint: every fragment becomes a delta frame."""
        await self.delta(fragment)

    async def fail(self, message: str, *, code: str | None = None) -> None:
        await self.emit(error_frame(message, code=code))

    async def complete(self, response: AnswerResponse) -> None:
        await self.emit(summary_frame(response))

    async def close(self) -> None:
        """Signal end of stream; a terminal frame must have been emitted."""
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_STREAM_END)
        if self._terminal is None:
            raise StreamProtocolError("Stream session closed without a terminal frame")

    @property
    def streamed_text(self) -> str:
        """Concatenation of every delta emitted so far."""
        return "".join(self._deltas)

    @property
    def terminal(self) -> StreamFrame | None:
        return self._terminal

    @property
    def done(self) -> bool:
        return self._closed

    def __aiter__(self) -> AsyncIterator[StreamFrame]:
        if self._consumed:
            raise RuntimeError("Stream session supports only one consumer")
        self._consumed = True
        return self._iter_frames()

    async def _iter_frames(self) -> AsyncIterator[StreamFrame]:
        while True:
            item = await self._queue.get()
            if item is _STREAM_END:
                break
            yield item  # type: ignore[misc]
