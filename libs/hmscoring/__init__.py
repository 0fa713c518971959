"""Harmonist Scoring

Frame-level accuracy scoring of a sung harmony and live on-target feedback.
"""

__version__ = "0.1.0"

from .models import NoteResult, RunningScore, RunScore, ScoringFrame
from .engine import DEFAULT_TOLERANCE_CENTS, ScoringEngine
from .feedback import OnTargetFeedback

__all__ = [
    # Models
    "ScoringFrame",
    "NoteResult",
    "RunScore",
    "RunningScore",
    # Engine
    "DEFAULT_TOLERANCE_CENTS",
    "ScoringEngine",
    # Feedback
    "OnTargetFeedback",
]
