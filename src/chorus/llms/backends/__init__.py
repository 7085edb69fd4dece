"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: backends/__init__.py.
"""

from .contracts import GenerationBackend
from .ollama import DEFAULT_BASE_URL, OllamaBackend, parse_chunk

__all__ = [
    "GenerationBackend",
    "OllamaBackend",
    "DEFAULT_BASE_URL",
    "parse_chunk",
]
