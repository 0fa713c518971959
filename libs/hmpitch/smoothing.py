"""Median smoothing for streaming pitch values."""

from __future__ import annotations

from collections import deque


class MedianPitchSmoother:
    """Median filter over the last N voiced readings.

    Median rather than mean so a single octave-jump frame cannot drag the
    output. Any unvoiced reading (<= 0) clears the window, so history from
    before a silence never leaks into the next phrase.
    """

    def __init__(self, window_size: int = 5):
        if window_size < 1:
            raise ValueError(f"window_size must be >= 1: {window_size}")
        self.window_size = window_size
        self._values: deque = deque(maxlen=window_size)

    def add(self, value: float) -> float:
        if value <= 0:
            self._values.clear()
            return 0.0

        self._values.append(float(value))
        ordered = sorted(self._values)
        return ordered[len(ordered) // 2]

    def reset(self) -> None:
        self._values.clear()

    def __len__(self) -> int:
        return len(self._values)


__all__ = ["MedianPitchSmoother"]
