"""Music theory tables and pitch conversions for practice melodies.

Provides the supported key set, diatonic scale tables (pitch classes in
scale-degree order starting from the tonic), difficulty levels, interval
names and the frequency/MIDI/cents conversions shared by the pitch and
scoring layers.
"""

from __future__ import annotations

import math
from enum import Enum, IntEnum
from typing import Dict, Optional, Tuple


class Difficulty(IntEnum):
    """Generator difficulty (controls duration variety and leap size)."""
    EASY = 1
    MEDIUM = 2
    HARD = 3


# Pitch classes of each key's scale, listed from the tonic upward
MAJOR_SCALES: Dict[str, Tuple[int, ...]] = {
    "C": (0, 2, 4, 5, 7, 9, 11),
    "G": (7, 9, 11, 0, 2, 4, 6),
    "D": (2, 4, 6, 7, 9, 11, 1),
    "A": (9, 11, 1, 2, 4, 6, 8),
    "E": (4, 6, 8, 9, 11, 1, 3),
    "F": (5, 7, 9, 10, 0, 2, 4),
    "Bb": (10, 0, 2, 3, 5, 7, 9),
    "Eb": (3, 5, 7, 8, 10, 0, 2),
}

# Natural minor
MINOR_SCALES: Dict[str, Tuple[int, ...]] = {
    "Am": (9, 11, 0, 2, 4, 5, 7),
    "Em": (4, 6, 7, 9, 11, 0, 2),
    "Dm": (2, 4, 5, 7, 9, 10, 0),
    "Gm": (7, 9, 10, 0, 2, 3, 5),
    "Cm": (0, 2, 3, 5, 7, 8, 10),
    "Fm": (5, 7, 8, 10, 0, 1, 3),
}

SCALES: Dict[str, Tuple[int, ...]] = {**MAJOR_SCALES, **MINOR_SCALES}
SUPPORTED_KEYS: Tuple[str, ...] = tuple(SCALES)

DEFAULT_MAJOR_KEY = "C"
DEFAULT_MINOR_KEY = "Am"

NOTE_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")

_NOTE_OFFSETS = {
    "C": 0, "C#": 1, "Db": 1,
    "D": 2, "D#": 3, "Eb": 3,
    "E": 4, "Fb": 4,
    "F": 5, "F#": 6, "Gb": 6,
    "G": 7, "G#": 8, "Ab": 8,
    "A": 9, "A#": 10, "Bb": 10,
    "B": 11, "Cb": 11,
}


# Semitone sizes of common intervals
INTERVALS: Dict[str, int] = {
    "UNISON": 0,
    "MINOR_SECOND": 1,
    "MAJOR_SECOND": 2,
    "MINOR_THIRD": 3,
    "MAJOR_THIRD": 4,
    "PERFECT_FOURTH": 5,
    "TRITONE": 6,
    "PERFECT_FIFTH": 7,
    "MINOR_SIXTH": 8,
    "MAJOR_SIXTH": 9,
    "MINOR_SEVENTH": 10,
    "MAJOR_SEVENTH": 11,
    "OCTAVE": 12,
}


class HarmonyInterval(str, Enum):
    """Harmony part a singer can choose to practice."""
    UNISON = "unison"
    SECOND = "2nd"
    THIRD = "3rd"
    FOURTH = "4th"
    FIFTH = "5th"
    SIXTH = "6th"
    SEVENTH = "7th"
    OCTAVE = "octave"


_INTERVAL_SEMITONES: Dict[HarmonyInterval, int] = {
    HarmonyInterval.UNISON: 0,
    HarmonyInterval.SECOND: 2,
    HarmonyInterval.THIRD: 4,
    HarmonyInterval.FOURTH: 5,
    HarmonyInterval.FIFTH: 7,
    HarmonyInterval.SIXTH: 9,
    HarmonyInterval.SEVENTH: 11,
    HarmonyInterval.OCTAVE: 12,
}

_INTERVAL_STEPS: Dict[HarmonyInterval, int] = {
    HarmonyInterval.UNISON: 0,
    HarmonyInterval.SECOND: 1,
    HarmonyInterval.THIRD: 2,
    HarmonyInterval.FOURTH: 3,
    HarmonyInterval.FIFTH: 4,
    HarmonyInterval.SIXTH: 5,
    HarmonyInterval.SEVENTH: 6,
    HarmonyInterval.OCTAVE: 7,
}


def interval_to_semitones(interval: HarmonyInterval) -> int:
    """Semitone size of a named interval (major/perfect quality)."""
    return _INTERVAL_SEMITONES[HarmonyInterval(interval)]


def interval_to_scale_steps(interval: HarmonyInterval) -> int:
    """Number of scale degrees spanned by a named interval (3rd -> 2)."""
    return _INTERVAL_STEPS[HarmonyInterval(interval)]


def is_minor_key(key: str) -> bool:
    return key.endswith("m")


def get_scale_degrees(key: str) -> Tuple[int, ...]:
    """Return the 7 pitch classes of a key in scale-degree order.

    Unknown minor keys (ending in 'm') fall back to A minor, anything else
    to C major.
    """
    if is_minor_key(key):
        return MINOR_SCALES.get(key, MINOR_SCALES[DEFAULT_MINOR_KEY])
    return MAJOR_SCALES.get(key, MAJOR_SCALES[DEFAULT_MAJOR_KEY])


def midi_to_frequency(midi: float) -> float:
    """Convert MIDI pitch to frequency in Hz (A4 = MIDI 69 = 440 Hz)."""
    return 440.0 * (2.0 ** ((midi - 69.0) / 12.0))


def frequency_to_midi(frequency: float) -> float:
    """Convert frequency to a continuous MIDI pitch.

    Not rounded, so cents-level deviation survives. Returns 0 for
    non-positive frequencies.
    """
    if frequency <= 0:
        return 0.0
    return 69.0 + 12.0 * math.log2(frequency / 440.0)


def cents_difference(frequency: float, reference: float) -> float:
    """Signed distance in cents from `reference` to `frequency`.

    Returns 0 if either frequency is non-positive.
    """
    if frequency <= 0 or reference <= 0:
        return 0.0
    return 1200.0 * math.log2(frequency / reference)


def midi_to_note_name(midi: float) -> str:
    """Name a MIDI pitch, e.g. 60 -> 'C4', 70 -> 'A#4'."""
    nearest = int(round(midi))
    return f"{NOTE_NAMES[nearest % 12]}{nearest // 12 - 1}"


def note_name_to_midi(name: str) -> Optional[int]:
    """Parse a note name such as 'C4', 'F#3' or 'Bb5'; None if malformed."""
    name = name.strip()
    if len(name) < 2:
        return None
    if len(name) >= 3 and name[1] in "#b":
        note, octave = name[:2], name[2:]
    else:
        note, octave = name[:1], name[1:]
    if note not in _NOTE_OFFSETS or not octave.isdigit():
        return None
    return (int(octave) + 1) * 12 + _NOTE_OFFSETS[note]


__all__ = [
    "Difficulty",
    "MAJOR_SCALES",
    "MINOR_SCALES",
    "SCALES",
    "SUPPORTED_KEYS",
    "DEFAULT_MAJOR_KEY",
    "DEFAULT_MINOR_KEY",
    "NOTE_NAMES",
    "INTERVALS",
    "HarmonyInterval",
    "interval_to_semitones",
    "interval_to_scale_steps",
    "is_minor_key",
    "get_scale_degrees",
    "midi_to_frequency",
    "frequency_to_midi",
    "cents_difference",
    "midi_to_note_name",
    "note_name_to_midi",
]
