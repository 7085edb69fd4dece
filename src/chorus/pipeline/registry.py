"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: pipeline/registry.py.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from ..llms.types import BackendDescriptor
from ..types import Mode, normalize_mode


@dataclass(frozen=True, slots=True)
class ModeProfile:
    """Backends, pipeline deadline and cache TTL bound to one mode."""

    mode: Mode
    backends: tuple[BackendDescriptor, ...]
    deadline_s: float
    cache_ttl_s: float

    def __post_init__(self) -> None:
        if not self.backends:
            raise ValueError(f"Mode '{self.mode}' needs at least one backend")
        if self.deadline_s <= 0 or self.cache_ttl_s <= 0:
            raise ValueError(f"Mode '{self.mode}' needs positive deadline and ttl")


def _backends(*models: str) -> tuple[BackendDescriptor, ...]:
    return tuple(BackendDescriptor(name=m, model=m) for m in models)


DEFAULT_PROFILES: dict[Mode, ModeProfile] = {
    "fast": ModeProfile(
        mode="fast",
        backends=_backends("llama3.2", "qwen2.5"),
        deadline_s=45.0,
        cache_ttl_s=10 * 60.0,
    ),
    "quality": ModeProfile(
        mode="quality",
        backends=_backends("llama3.2", "qwen2.5", "mistral"),
        deadline_s=120.0,
        cache_ttl_s=30 * 60.0,
    ),
}


@dataclass(frozen=True, slots=True)
class ModeRegistry:
    """Static lookup of the profile used for each mode."""

    profiles: Mapping[Mode, ModeProfile] = field(
        default_factory=lambda: dict(DEFAULT_PROFILES)
    )

    def resolve(self, mode: str) -> ModeProfile:
        """Return the profile for ``mode``; unknown modes resolve to fast."""
        key = normalize_mode(mode)
        profile = self.profiles.get(key)
        if profile is None:
            raise KeyError(f"No profile registered for mode '{key}'")
        return profile

    def modes(self) -> list[str]:
        return sorted(self.profiles.keys())
