"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Service settings and explicit environment loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .llms.backends.ollama import DEFAULT_BASE_URL
from .llms.types import BackendDescriptor
from .pipeline.engine import DEFAULT_JUDGE_MODEL
from .pipeline.policy import PolicyConfig
from .pipeline.registry import ModeProfile, ModeRegistry


@dataclass(frozen=True, slots=True)
class ChorusSettings:
    """Explicit settings used by the backend client, pipeline and server."""

    ollama_url: str = DEFAULT_BASE_URL
    backend_timeout_s: float = 180.0

    judge_model: str = DEFAULT_JUDGE_MODEL
    synth_model: str | None = None

    fast_models: tuple[str, ...] = ("llama3.2", "qwen2.5")
    quality_models: tuple[str, ...] = ("llama3.2", "qwen2.5", "mistral")
    fast_deadline_s: float = 45.0
    quality_deadline_s: float = 120.0
    fast_cache_ttl_s: float = 600.0
    quality_cache_ttl_s: float = 1800.0

    shortcut_length_delta: int = 350
    newline_margin: int = 1
    fast_synthesis_max_chars: int | None = 500
    top_k: int = 2

    service_name: str = "chorus"
    host: str = "0.0.0.0"
    port: int = 8080

    @staticmethod
    def from_env() -> "ChorusSettings":
        """Load settings from ``CHORUS_*`` environment variables."""
        return ChorusSettings(
            ollama_url=os.getenv("CHORUS_OLLAMA_URL", DEFAULT_BASE_URL),
            backend_timeout_s=float(os.getenv("CHORUS_BACKEND_TIMEOUT_S", "180")),
            judge_model=os.getenv("CHORUS_JUDGE_MODEL", DEFAULT_JUDGE_MODEL),
            synth_model=os.getenv("CHORUS_SYNTH_MODEL") or None,
            fast_models=_split(os.getenv("CHORUS_FAST_MODELS", "llama3.2,qwen2.5")),
            quality_models=_split(
                os.getenv("CHORUS_QUALITY_MODELS", "llama3.2,qwen2.5,mistral")
            ),
            fast_deadline_s=float(os.getenv("CHORUS_FAST_DEADLINE_S", "45")),
            quality_deadline_s=float(os.getenv("CHORUS_QUALITY_DEADLINE_S", "120")),
            fast_cache_ttl_s=float(os.getenv("CHORUS_FAST_CACHE_TTL_S", "600")),
            quality_cache_ttl_s=float(os.getenv("CHORUS_QUALITY_CACHE_TTL_S", "1800")),
            shortcut_length_delta=int(os.getenv("CHORUS_SHORTCUT_LENGTH_DELTA", "350")),
            newline_margin=int(os.getenv("CHORUS_NEWLINE_MARGIN", "1")),
            fast_synthesis_max_chars=_optional_int(
                os.getenv("CHORUS_FAST_SYNTHESIS_MAX_CHARS", "500")
            ),
            top_k=int(os.getenv("CHORUS_TOP_K", "2")),
            host=os.getenv("CHORUS_HOST", "0.0.0.0"),
            port=int(os.getenv("CHORUS_PORT", "8080")),
        )

    def to_registry(self) -> ModeRegistry:
        """Build the per-mode backend registry from the model lists."""
        return ModeRegistry(
            profiles={
                "fast": ModeProfile(
                    mode="fast",
                    backends=tuple(BackendDescriptor.parse(m) for m in self.fast_models),
                    deadline_s=self.fast_deadline_s,
                    cache_ttl_s=self.fast_cache_ttl_s,
                ),
                "quality": ModeProfile(
                    mode="quality",
                    backends=tuple(BackendDescriptor.parse(m) for m in self.quality_models),
                    deadline_s=self.quality_deadline_s,
                    cache_ttl_s=self.quality_cache_ttl_s,
                ),
            }
        )

    def to_policy_config(self) -> PolicyConfig:
        return PolicyConfig(
            shortcut_length_delta=self.shortcut_length_delta,
            newline_margin=self.newline_margin,
            fast_synthesis_max_chars=self.fast_synthesis_max_chars,
            top_k=self.top_k,
        )


def _split(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _optional_int(value: str) -> int | None:
    value = value.strip().lower()
    if value in ("", "none", "off"):
        return None
    return int(value)
