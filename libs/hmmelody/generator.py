"""Seeded melody generation for harmony practice.

Random-walk melodies over a key's diatonic scale, fully determined by
(seed, key, difficulty, note_count) so a practice phrase can be replayed
from its seed alone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .rng import Mulberry32
from .theory import DEFAULT_MAJOR_KEY, SCALES, Difficulty

logger = logging.getLogger(__name__)

# Melodies sit in C4..B4
BASE_MIDI = 60

# Note durations by difficulty (ms)
DURATIONS: Dict[Difficulty, Tuple[int, ...]] = {
    Difficulty.EASY: (800, 1000, 1200),
    Difficulty.MEDIUM: (400, 600, 800, 1000),
    Difficulty.HARD: (200, 300, 400, 600, 800),
}

# Largest step between consecutive notes, in scale degrees
MAX_JUMP: Dict[Difficulty, int] = {
    Difficulty.EASY: 2,
    Difficulty.MEDIUM: 3,
    Difficulty.HARD: 5,
}


@dataclass(frozen=True)
class Note:
    """A musical event: MIDI pitch plus timing relative to phrase start."""

    pitch: int
    start_ms: int
    duration_ms: int

    def __post_init__(self):
        if self.start_ms < 0:
            raise ValueError(f"start_ms must be non-negative: {self.start_ms}")
        if self.duration_ms <= 0:
            raise ValueError(f"duration_ms must be positive: {self.duration_ms}")

    @property
    def end_ms(self) -> int:
        return self.start_ms + self.duration_ms

    def contains(self, time_ms: float) -> bool:
        """True if time_ms falls in [start_ms, end_ms)."""
        return self.start_ms <= time_ms < self.end_ms


@dataclass(frozen=True)
class GenerationParams:
    """Everything that determines a generated melody."""

    seed: int
    key: str = DEFAULT_MAJOR_KEY
    difficulty: Difficulty = Difficulty.MEDIUM
    note_count: int = 8

    def __post_init__(self):
        object.__setattr__(self, "seed", int(self.seed) & 0xFFFFFFFF)
        object.__setattr__(self, "difficulty", Difficulty(self.difficulty))


class SeededMelodyGenerator:
    """Deterministic melody generator.

    All randomness (starting degree, per-note duration, per-note leap) is
    drawn from a single Mulberry32 stream in that fixed order, so the same
    params always yield the same notes.
    """

    def generate(self, params: GenerationParams) -> List[Note]:
        """Generate a melody.

        Args:
            params: Seed, key, difficulty and length

        Returns:
            Contiguous notes (each note starts where the previous one ends).
            Empty when note_count <= 0. Unknown keys use C major.
        """
        if params.note_count <= 0:
            return []

        scale = SCALES.get(params.key)
        if scale is None:
            logger.debug(f"Unknown key {params.key!r}, falling back to {DEFAULT_MAJOR_KEY}")
            scale = SCALES[DEFAULT_MAJOR_KEY]

        rng = Mulberry32(params.seed)
        durations = DURATIONS[params.difficulty]
        max_jump = MAX_JUMP[params.difficulty]
        top_degree = len(scale) - 1

        notes: List[Note] = []
        current_ms = 0
        degree = rng.next_int(0, top_degree)

        for _ in range(params.note_count):
            duration = rng.choice(durations)
            notes.append(Note(pitch=BASE_MIDI + scale[degree], start_ms=current_ms, duration_ms=duration))
            current_ms += duration

            jump = rng.next_int(-max_jump, max_jump)
            degree = max(0, min(top_degree, degree + jump))

        return notes


def generate_melody(
    seed: int,
    key: str = DEFAULT_MAJOR_KEY,
    difficulty: Difficulty = Difficulty.MEDIUM,
    note_count: int = 8,
) -> List[Note]:
    """Convenience function to generate a melody."""
    params = GenerationParams(seed=seed, key=key, difficulty=difficulty, note_count=note_count)
    return SeededMelodyGenerator().generate(params)


def melody_duration_ms(notes: Sequence[Note]) -> int:
    """End time of the last note (0 for an empty melody)."""
    return max((n.end_ms for n in notes), default=0)


__all__ = [
    "BASE_MIDI",
    "DURATIONS",
    "MAX_JUMP",
    "Note",
    "GenerationParams",
    "SeededMelodyGenerator",
    "generate_melody",
    "melody_duration_ms",
]
