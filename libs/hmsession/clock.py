"""Playback position clock."""

from __future__ import annotations

import time
from typing import Callable


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class PlaybackClock:
    """Tracks the playback position of a phrase in milliseconds.

    Looping clocks wrap the position modulo the phrase length; non-looping
    clocks stop advancing at the phrase end.
    """

    def __init__(self, phrase_ms: float = 0.0, loop: bool = True, clock: Callable[[], float] = _monotonic_ms):
        self.phrase_ms = phrase_ms
        self.loop = loop
        self._clock = clock
        self._playing = False
        self._started_at = 0.0
        self._offset = 0.0

    @property
    def is_playing(self) -> bool:
        return self._playing

    def play(self) -> None:
        if self._playing:
            return
        self._started_at = self._clock()
        self._playing = True

    def pause(self) -> None:
        if not self._playing:
            return
        self._offset += self._clock() - self._started_at
        self._playing = False

    def resume(self) -> None:
        self.play()

    def stop(self) -> None:
        self._playing = False
        self._offset = 0.0

    def elapsed_ms(self) -> float:
        """Total time played since the last stop, without wrapping."""
        if self._playing:
            return self._offset + self._clock() - self._started_at
        return self._offset

    def position_ms(self) -> float:
        elapsed = self.elapsed_ms()
        if self.phrase_ms <= 0:
            return elapsed
        if self.loop:
            return elapsed % self.phrase_ms
        return min(elapsed, self.phrase_ms)

    def loop_count(self) -> int:
        """Completed passes through the phrase."""
        if self.phrase_ms <= 0:
            return 0
        return int(self.elapsed_ms() // self.phrase_ms)


__all__ = ["PlaybackClock"]
