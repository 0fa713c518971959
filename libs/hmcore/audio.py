"""Audio I/O helpers for Harmonist.

Standardizes WAV reading/writing for practice takes and rendered phrases.
Uses soundfile for robust I/O. Waveforms are returned as float32 arrays
in range [-1.0, 1.0].
"""

from __future__ import annotations

import io
from typing import Iterator, Optional, Tuple

import numpy as np
import soundfile as sf


DEFAULT_SAMPLE_RATE = 44_100
DEFAULT_SUBTYPE = "PCM_16"


def validate_format(sample_rate: int, channels: int) -> None:
    if sample_rate <= 0:
        raise ValueError(f"Invalid sample rate: {sample_rate}")
    if channels not in (1, 2):
        raise ValueError(f"Invalid channel count: {channels} (expected 1 or 2)")


def read_wav(path: str) -> Tuple[np.ndarray, int]:
    """Read a WAV file and return (audio, sample_rate).

    Audio is returned as float32 np.ndarray with shape (samples, channels).
    """
    audio, sr = sf.read(path, dtype="float32", always_2d=True)
    return audio, sr


def read_wav_bytes(data: bytes) -> Tuple[np.ndarray, int]:
    """Read WAV from bytes and return (audio, sample_rate)."""
    with io.BytesIO(data) as buf:
        audio, sr = sf.read(buf, dtype="float32", always_2d=True)
    return audio, sr


def write_wav(path: str, audio: np.ndarray, sample_rate: int = DEFAULT_SAMPLE_RATE, subtype: str = DEFAULT_SUBTYPE) -> None:
    """Write audio to WAV with the specified format.

    Accepts audio as shape (samples,) or (samples, channels). Values should be
    float32 in [-1, 1].
    """
    if audio.ndim == 1:
        audio = audio.reshape(-1, 1)
    validate_format(sample_rate, audio.shape[1])
    sf.write(path, audio, sample_rate, subtype=subtype)


def write_wav_bytes(audio: np.ndarray, sample_rate: int = DEFAULT_SAMPLE_RATE, subtype: str = DEFAULT_SUBTYPE) -> bytes:
    """Encode audio as WAV bytes (same rules as write_wav)."""
    if audio.ndim == 1:
        audio = audio.reshape(-1, 1)
    validate_format(sample_rate, audio.shape[1])
    buf = io.BytesIO()
    sf.write(buf, audio, sample_rate, format="WAV", subtype=subtype)
    return buf.getvalue()


def to_mono(audio: np.ndarray) -> np.ndarray:
    """Convert stereo to mono by averaging channels. If mono, return as-is."""
    if audio.ndim == 1:
        return audio
    if audio.shape[1] == 1:
        return audio[:, 0]
    return audio.mean(axis=1)


def frame_signal(audio: np.ndarray, block_size: int, hop_size: Optional[int] = None) -> Iterator[Tuple[int, np.ndarray]]:
    """Yield (start_sample, block) pairs of fixed-size analysis blocks.

    Trailing samples that do not fill a whole block are dropped, matching
    what a streaming input callback would deliver.
    """
    if block_size <= 0:
        raise ValueError(f"block_size must be positive: {block_size}")
    hop = hop_size or block_size
    if hop <= 0:
        raise ValueError(f"hop_size must be positive: {hop}")

    audio = to_mono(np.asarray(audio, dtype=np.float32))
    for start in range(0, len(audio) - block_size + 1, hop):
        yield start, audio[start : start + block_size]


__all__ = [
    "DEFAULT_SAMPLE_RATE",
    "DEFAULT_SUBTYPE",
    "validate_format",
    "read_wav",
    "read_wav_bytes",
    "write_wav",
    "write_wav_bytes",
    "to_mono",
    "frame_signal",
]
