"""Harmonist Pitch

YIN pitch detection, smoothing and the streaming detector service.
"""

__version__ = "0.1.0"

from hmmelody.theory import cents_difference, frequency_to_midi, midi_to_frequency, midi_to_note_name

from .errors import AudioSourceError, MicrophonePermissionError, PitchDetectionError
from .yin import UNVOICED, YinParams, YinResult, detect_pitch
from .smoothing import MedianPitchSmoother
from .backends import NumbaYinBackend, PitchBackend, SoftwareYinBackend, numba_available, select_backend
from .sources import AudioSource, BufferedSource, MicrophoneSource, request_microphone_access
from .detector import PitchDetector, PitchDetectorConfig, PitchEstimate, PitchListener

__all__ = [
    # Conversions
    "cents_difference",
    "frequency_to_midi",
    "midi_to_frequency",
    "midi_to_note_name",
    # Errors
    "PitchDetectionError",
    "AudioSourceError",
    "MicrophonePermissionError",
    # YIN
    "UNVOICED",
    "YinParams",
    "YinResult",
    "detect_pitch",
    "MedianPitchSmoother",
    # Backends
    "PitchBackend",
    "SoftwareYinBackend",
    "NumbaYinBackend",
    "numba_available",
    "select_backend",
    # Sources
    "AudioSource",
    "BufferedSource",
    "MicrophoneSource",
    "request_microphone_access",
    # Service
    "PitchDetector",
    "PitchDetectorConfig",
    "PitchEstimate",
    "PitchListener",
]
