"""Piano-like tone rendering for melody and harmony playback.

Phrases are rendered offline into float32 arrays; playing them is left to
the caller (sounddevice, a browser, a WAV file).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from hmcore.audio import DEFAULT_SAMPLE_RATE
from hmmelody.generator import Note, melody_duration_ms
from hmmelody.theory import midi_to_frequency

# Relative weights of harmonics 1..5
HARMONICS: Tuple[float, ...] = (1.0, 0.5, 0.25, 0.125, 0.0625)

# Harmony sits slightly under the melody in the mix
HARMONY_GAIN = 0.7


@dataclass(frozen=True)
class ToneConfig:
    """Envelope and level of a rendered tone."""

    attack: float = 0.005  # seconds
    decay: float = 0.1  # seconds
    sustain_level: float = 0.6
    release: float = 0.1  # seconds
    amplitude: float = 0.25


def _adsr(num_samples: int, sample_rate: int, config: ToneConfig) -> np.ndarray:
    attack = int(config.attack * sample_rate)
    decay = int(config.decay * sample_rate)
    release = int(config.release * sample_rate)
    idx = np.arange(num_samples, dtype=np.float64)

    envelope = np.full(num_samples, config.sustain_level, dtype=np.float64)

    # Decay from peak to sustain
    if decay > 0:
        in_decay = (idx >= attack) & (idx < attack + decay)
        progress = (idx[in_decay] - attack) / decay
        envelope[in_decay] = 1.0 - (1.0 - config.sustain_level) * progress

    # Attack
    if attack > 0:
        in_attack = idx < attack
        envelope[in_attack] = idx[in_attack] / attack

    # Release (wins over everything for short notes)
    if release > 0:
        in_release = idx >= num_samples - release
        envelope[in_release] = config.sustain_level * (num_samples - idx[in_release]) / release

    return envelope


def render_tone(
    frequency: float,
    duration_ms: float,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    config: Optional[ToneConfig] = None,
) -> np.ndarray:
    """Render one piano-like tone.

    Args:
        frequency: Fundamental in Hz
        duration_ms: Length in milliseconds
        sample_rate: Output sample rate

    Returns:
        Tone as float32 array; harmonics above Nyquist are skipped
    """
    config = config or ToneConfig()
    num_samples = int(duration_ms / 1000.0 * sample_rate)
    if num_samples <= 0 or frequency <= 0:
        return np.zeros(max(num_samples, 0), dtype=np.float32)

    t = np.arange(num_samples) / sample_rate
    wave = np.zeros(num_samples, dtype=np.float64)
    for h, weight in enumerate(HARMONICS, start=1):
        if frequency * h < sample_rate / 2:
            wave += weight * np.sin(2 * np.pi * frequency * h * t)

    tone = wave * _adsr(num_samples, sample_rate, config) * config.amplitude
    return tone.astype(np.float32)


def render_phrase(notes: Sequence[Note], sample_rate: int = DEFAULT_SAMPLE_RATE) -> np.ndarray:
    """Render notes at their start offsets into one buffer."""
    total = int(melody_duration_ms(notes) / 1000.0 * sample_rate)
    phrase = np.zeros(total, dtype=np.float32)

    for note in notes:
        tone = render_tone(midi_to_frequency(note.pitch), note.duration_ms, sample_rate)
        start = int(note.start_ms / 1000.0 * sample_rate)
        end = min(start + len(tone), total)
        phrase[start:end] += tone[: end - start]

    return phrase


def render_practice_mix(
    melody: Sequence[Note],
    harmony: Sequence[Note],
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    harmony_gain: float = HARMONY_GAIN,
    harmony_muted: bool = False,
) -> np.ndarray:
    """Mix melody and harmony for playback.

    With `harmony_muted` only the melody is rendered (ghost mode with the
    singer off target).
    """
    mix = render_phrase(melody, sample_rate)
    if harmony_muted or not harmony:
        return mix

    part = render_phrase(harmony, sample_rate) * harmony_gain
    if len(part) > len(mix):
        mix = np.pad(mix, (0, len(part) - len(mix)))
    mix[: len(part)] += part

    peak = float(np.max(np.abs(mix))) if len(mix) else 0.0
    if peak > 1.0:
        mix = mix / peak
    return mix.astype(np.float32)


__all__ = [
    "HARMONICS",
    "HARMONY_GAIN",
    "ToneConfig",
    "render_tone",
    "render_phrase",
    "render_practice_mix",
]
