"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: runtime/__init__.py.
"""

from .fanout import ANSWER_PREAMBLE, FanOutResult, Outcome, fan_out, gather_until
from .timeouts import Deadline, await_with_deadline, iter_until_deadline

__all__ = [
    "ANSWER_PREAMBLE",
    "Deadline",
    "FanOutResult",
    "Outcome",
    "await_with_deadline",
    "fan_out",
    "gather_until",
    "iter_until_deadline",
]
