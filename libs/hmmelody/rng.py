"""Seeded 32-bit pseudo-random stream (Mulberry32).

The generator must produce identical melodies for identical seeds on every
platform, so it does not use `random` or numpy's bit generators; every step
is done in explicit 32-bit unsigned arithmetic.
"""

from __future__ import annotations

import math
from typing import Sequence, TypeVar

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF
_INCREMENT = 0x6D2B79F5
_TWO_32 = 4294967296.0


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


class Mulberry32:
    """Mulberry32 float stream in [0, 1)."""

    def __init__(self, seed: int):
        self.state = int(seed) & _MASK32

    def next_float(self) -> float:
        self.state = (self.state + _INCREMENT) & _MASK32
        t = self.state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / _TWO_32

    def next_int(self, low: int, high: int) -> int:
        """Integer in [low, high], both inclusive."""
        return math.floor(self.next_float() * (high - low + 1)) + low

    def choice(self, items: Sequence[T]) -> T:
        return items[self.next_int(0, len(items) - 1)]


__all__ = ["Mulberry32"]
