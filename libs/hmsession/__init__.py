"""Harmonist Session

Practice session orchestration, playback timing and phrase rendering.
"""

__version__ = "0.1.0"

from .settings import TOLERANCE_PRESETS, PracticeSettings
from .clock import PlaybackClock
from .synth import ToneConfig, render_phrase, render_practice_mix, render_tone
from .session import PracticeSession, score_take, track_pitch

__all__ = [
    # Settings
    "TOLERANCE_PRESETS",
    "PracticeSettings",
    # Playback
    "PlaybackClock",
    "ToneConfig",
    "render_tone",
    "render_phrase",
    "render_practice_mix",
    # Session
    "PracticeSession",
    "score_take",
    "track_pitch",
]
