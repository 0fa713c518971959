"""Harmony line computation.

Derives a parallel harmony part from a melody, either by a fixed semitone
offset or by moving a number of scale degrees within the key (diatonic
mode, where thirds alternate major/minor so the part stays in key).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Sequence, Tuple

from .generator import Note
from .theory import DEFAULT_MAJOR_KEY, get_scale_degrees


class HarmonyMode(str, Enum):
    FIXED = "fixed"
    DIATONIC = "diatonic"


@dataclass(frozen=True)
class HarmonyParams:
    """Harmony request.

    `interval` is in semitones for fixed mode and in scale degrees for
    diatonic mode (2 = a third). `direction` is +1 (above) or -1 (below).
    """

    melody: Sequence[Note] = field(default_factory=tuple)
    interval: int = 2
    mode: HarmonyMode = HarmonyMode.DIATONIC
    key: str = DEFAULT_MAJOR_KEY
    direction: int = 1

    def __post_init__(self):
        if self.direction not in (1, -1):
            raise ValueError(f"direction must be 1 or -1: {self.direction}")
        object.__setattr__(self, "mode", HarmonyMode(self.mode))


def _nearest_scale_position(pitch_class: int, scale: Sequence[int]) -> int:
    """Index of the scale tone closest to pitch_class (lowest index on ties)."""
    if pitch_class in scale:
        return scale.index(pitch_class)

    def distance(i: int) -> int:
        d = abs(scale[i] - pitch_class)
        return min(d, 12 - d)

    return min(range(len(scale)), key=distance)


def diatonic_offset(pitch: int, steps: int, scale: Sequence[int], direction: int = 1) -> int:
    """Semitone offset that moves `pitch` by `steps` scale degrees.

    The result is the scale tone `steps` degrees away from the melody
    note's scale position, strictly above (direction=1) or strictly below
    (direction=-1) the melody note, with one extra octave for every full 7
    degrees. A non-diatonic melody note takes the scale position of its
    nearest scale tone. Negative `steps` reverse the direction.
    """
    if steps < 0:
        steps, direction = -steps, -direction
    if steps == 0:
        return 0

    pitch_class = pitch % 12
    position = _nearest_scale_position(pitch_class, scale)

    # Signed distance to the nearest scale tone, in [-6, 5]
    delta = (pitch_class - scale[position] + 6) % 12 - 6
    anchor = pitch - delta

    target_class = scale[(position + steps * direction) % len(scale)]
    octaves = steps // len(scale)

    if direction == 1:
        span = (target_class - scale[position]) % 12 + 12 * octaves
        target = anchor + span
        if target <= pitch:
            target += 12
    else:
        span = (scale[position] - target_class) % 12 + 12 * octaves
        target = anchor - span
        if target >= pitch:
            target -= 12

    return target - pitch


class HarmonyEngine:
    """Computes harmony notes from a melody."""

    def compute_harmony(self, params: HarmonyParams) -> List[Note]:
        """Compute harmony from melody.

        Returns:
            One harmony note per melody note with identical timing.
        """
        scale = self.get_scale_degrees(params.key)
        harmony: List[Note] = []

        for note in params.melody:
            if params.mode is HarmonyMode.FIXED:
                offset = params.interval * params.direction
            else:
                offset = diatonic_offset(note.pitch, params.interval, scale, params.direction)

            harmony.append(Note(pitch=note.pitch + offset, start_ms=note.start_ms, duration_ms=note.duration_ms))

        return harmony

    def get_scale_degrees(self, key: str) -> Tuple[int, ...]:
        """Pitch classes (0-11) of the key's scale, tonic first.

        Falls back to A minor for unknown minor keys and C major otherwise.
        """
        return get_scale_degrees(key)


def compute_harmony(
    melody: Sequence[Note],
    interval: int,
    mode: HarmonyMode = HarmonyMode.DIATONIC,
    key: str = DEFAULT_MAJOR_KEY,
    direction: int = 1,
) -> List[Note]:
    """Convenience function to compute a harmony line."""
    params = HarmonyParams(melody=melody, interval=interval, mode=mode, key=key, direction=direction)
    return HarmonyEngine().compute_harmony(params)


__all__ = [
    "HarmonyMode",
    "HarmonyParams",
    "HarmonyEngine",
    "diatonic_offset",
    "compute_harmony",
]
