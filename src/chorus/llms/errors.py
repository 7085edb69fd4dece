"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Errors raised by generation backends.

Every backend failure is soft from the pipeline's point of view: it only
removes one candidate. The classes exist so callers can tell rate limiting
and timeouts apart from plain outages.
"""

from __future__ import annotations

import asyncio

from ..errors import ChorusError


class BackendError(ChorusError):
    """Base class for one failed backend call."""


class BackendUnavailableError(BackendError):
    """Transport-level failure (connection refused, reset, DNS)."""


class BackendTimeoutError(BackendError):
    """Call exceeded the HTTP timeout or the pipeline deadline."""


class BackendInvalidResponseError(BackendError):
    """Backend answered with a body that does not match the wire format."""


class BackendStatusError(BackendError):
    """Backend answered with a non-success HTTP status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"backend returned HTTP {status_code}: {body}".strip())
        self.status_code = status_code
        self.body = body

    @property
    def rate_limited(self) -> bool:
        return self.status_code == 429


def classify_error(error: BaseException) -> BackendError:
    """Map arbitrary call failures into the backend error family."""
    if isinstance(error, BackendError):
        return error
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return BackendTimeoutError(str(error) or "backend call timed out")
    if isinstance(error, (ConnectionError, OSError)):
        return BackendUnavailableError(str(error))
    return BackendError(str(error) or type(error).__name__)


def is_rate_limited(error: BaseException) -> bool:
    return isinstance(error, BackendStatusError) and error.rate_limited
