"""Harmonist Melody

Seeded practice melodies, harmony lines and the music theory behind them.
"""

__version__ = "0.1.0"

from .theory import (
    Difficulty,
    HarmonyInterval,
    INTERVALS,
    SCALES,
    SUPPORTED_KEYS,
    get_scale_degrees,
    interval_to_semitones,
    interval_to_scale_steps,
    midi_to_frequency,
    frequency_to_midi,
    cents_difference,
    midi_to_note_name,
    note_name_to_midi,
)
from .rng import Mulberry32
from .generator import (
    Note,
    GenerationParams,
    SeededMelodyGenerator,
    generate_melody,
    melody_duration_ms,
)
from .harmony import HarmonyMode, HarmonyParams, HarmonyEngine, compute_harmony
from .midi_utils import notes_to_f0_curve

__all__ = [
    # Theory
    "Difficulty",
    "HarmonyInterval",
    "INTERVALS",
    "SCALES",
    "SUPPORTED_KEYS",
    "get_scale_degrees",
    "interval_to_semitones",
    "interval_to_scale_steps",
    "midi_to_frequency",
    "frequency_to_midi",
    "cents_difference",
    "midi_to_note_name",
    "note_name_to_midi",
    # Melody generation
    "Mulberry32",
    "Note",
    "GenerationParams",
    "SeededMelodyGenerator",
    "generate_melody",
    "melody_duration_ms",
    # Harmony
    "HarmonyMode",
    "HarmonyParams",
    "HarmonyEngine",
    "compute_harmony",
    # F0 utilities
    "notes_to_f0_curve",
]
