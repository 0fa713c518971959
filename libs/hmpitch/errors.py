"""Pitch detection errors."""

from __future__ import annotations


class PitchDetectionError(Exception):
    """Base class for pitch detection failures."""


class AudioSourceError(PitchDetectionError):
    """The audio input could not be opened or driven."""


class MicrophonePermissionError(AudioSourceError):
    """Microphone access was denied or no input device is available."""


__all__ = ["PitchDetectionError", "AudioSourceError", "MicrophonePermissionError"]
