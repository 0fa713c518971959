"""Note sequence to F0 curve conversion.

Turns a melody or harmony line into a continuous target-frequency curve,
used for plotting a practice phrase against a detected pitch track.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

from .generator import Note, melody_duration_ms
from .theory import midi_to_frequency


def notes_to_f0_curve(
    notes: Sequence[Note],
    hop_ms: float = 10.0,
) -> Tuple[np.ndarray, np.ndarray]:
    """Convert notes to a target F0 curve.

    Args:
        notes: Notes with millisecond timing
        hop_ms: Spacing between curve frames in milliseconds

    Returns:
        (times_ms, f0_curve) where:
            times_ms: Frame times in milliseconds
            f0_curve: Target F0 in Hz (0 where no note sounds)
    """
    if hop_ms <= 0:
        raise ValueError(f"hop_ms must be positive: {hop_ms}")
    if not notes:
        return np.array([]), np.array([])

    total_ms = melody_duration_ms(notes)
    num_frames = int(np.ceil(total_ms / hop_ms))

    times = np.arange(num_frames) * hop_ms
    f0_curve = np.zeros(num_frames, dtype=np.float32)

    for note in notes:
        # Half-open [start, end) like the scoring lookup
        mask = (times >= note.start_ms) & (times < note.end_ms)
        f0_curve[mask] = midi_to_frequency(float(note.pitch))

    return times, f0_curve


__all__ = ["notes_to_f0_curve"]
