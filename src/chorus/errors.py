"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Domain errors raised by the answer pipeline and its transports.
"""

from __future__ import annotations


class ChorusError(RuntimeError):
    """Base class for every error raised by chorus."""


class InvalidRequestError(ChorusError):
    """Raised when an inbound answer request is malformed."""


class UpstreamUnavailableError(ChorusError):
    """Raised when no backend produced a usable candidate."""

    def __init__(self, message: str, *, rate_limited: bool = False) -> None:
        super().__init__(message)
        self.rate_limited = rate_limited

    @property
    def code(self) -> str:
        return "upstream_rate_limited" if self.rate_limited else "upstream_unavailable"


class JudgeError(ChorusError):
    """Raised when the judge backend yields no usable scores."""


class SynthesisError(ChorusError):
    """
    Raised when the merge call fails or returns nothing.

    ``emitted`` holds the text already forwarded to a sink before the
    failure (always empty for atomic merges).
    """

    def __init__(self, message: str, *, emitted: str = "") -> None:
        super().__init__(message)
        self.emitted = emitted


class StreamProtocolError(ChorusError):
    """Raised when a stream session would violate the frame grammar."""
