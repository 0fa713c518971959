"""Scoring records and summaries."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class ScoringFrame:
    """One processed pitch estimate, classified against the active target."""

    timestamp_ms: float
    detected_frequency_hz: float
    is_voiced: bool
    target_pitch: int
    cents_deviation: float
    is_on_target: bool


@dataclass(frozen=True)
class NoteResult:
    """Accuracy for one target note of the run."""

    target_pitch: int
    start_ms: int
    duration_ms: int
    voiced_frames: int
    correct_frames: int
    score_percent: float
    avg_cents_deviation: float


@dataclass(frozen=True)
class RunScore:
    """Summary returned by `ScoringEngine.end_run`."""

    overall_score_percent: float
    note_results: Tuple[NoteResult, ...]
    total_voiced_frames: int
    total_correct_frames: int
    duration_ms: float

    @classmethod
    def empty(cls) -> "RunScore":
        return cls(
            overall_score_percent=0.0,
            note_results=(),
            total_voiced_frames=0,
            total_correct_frames=0,
            duration_ms=0.0,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["note_results"] = [asdict(r) for r in self.note_results]
        return data


@dataclass(frozen=True)
class RunningScore:
    """Live score of the current run, updated on every processed frame."""

    frames: int
    voiced_frames: int
    correct_frames: int

    @property
    def score_percent(self) -> float:
        if self.frames == 0:
            return 0.0
        return self.correct_frames / self.frames * 100.0


__all__ = ["ScoringFrame", "NoteResult", "RunScore", "RunningScore"]
