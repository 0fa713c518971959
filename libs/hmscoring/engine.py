"""Real-time and end-of-run scoring against a moving harmony target.

The engine is Idle until `start_run`, Running until `end_run`. Pitch
estimates arrive from the audio thread while the UI polls `is_on_target`,
so every public method holds the same lock.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence

from hmmelody.generator import Note
from hmmelody.theory import cents_difference, midi_to_frequency
from hmpitch.detector import PitchEstimate

from .models import NoteResult, RunningScore, RunScore, ScoringFrame

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE_CENTS = 50.0


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


def _find_note_index(notes: Sequence[Note], time_ms: float) -> int:
    for i, note in enumerate(notes):
        if note.contains(time_ms):
            return i
    return -1


class ScoringEngine:
    """Scores a sung harmony line frame by frame.

    Args:
        tolerance_cents: Max |deviation| still counted as on target (inclusive)
        clock: Returns the current time in milliseconds; used for run duration
    """

    def __init__(
        self,
        tolerance_cents: float = DEFAULT_TOLERANCE_CENTS,
        clock: Callable[[], float] = _monotonic_ms,
    ):
        if tolerance_cents <= 0:
            raise ValueError(f"tolerance_cents must be positive: {tolerance_cents}")
        self._tolerance = float(tolerance_cents)
        self._clock = clock
        self._lock = threading.Lock()

        self._harmony: List[Note] = []
        self._frames: List[ScoringFrame] = []
        self._running = False
        self._start_ms = 0.0
        self._current_index = -1
        self._on_target = False
        self._voiced_count = 0
        self._correct_count = 0

    # ---------- Run lifecycle ----------
    def start_run(self, harmony_notes: Sequence[Note]) -> None:
        """Begin a new run, discarding any frames from a previous one."""
        with self._lock:
            self._harmony = list(harmony_notes)
            self._frames = []
            self._running = True
            self._start_ms = self._clock()
            self._current_index = -1
            self._on_target = False
            self._voiced_count = 0
            self._correct_count = 0
        logger.info(f"Scoring run started ({len(self._harmony)} target notes)")

    @property
    def is_running(self) -> bool:
        return self._running

    def process_pitch(self, estimate: PitchEstimate, current_time_ms: float) -> None:
        """Classify one pitch estimate against the note active at `current_time_ms`.

        No-op while Idle or when no target note covers the timestamp.
        """
        with self._lock:
            if not self._running:
                return

            index = self._target_index(current_time_ms)
            if index < 0:
                return
            target = self._harmony[index]

            cents = 0.0
            on_target = False
            if estimate.is_voiced and estimate.frequency_hz > 0:
                cents = cents_difference(estimate.frequency_hz, midi_to_frequency(target.pitch))
                on_target = abs(cents) <= self._tolerance

            self._on_target = on_target
            if estimate.is_voiced:
                self._voiced_count += 1
            if on_target:
                self._correct_count += 1

            self._frames.append(
                ScoringFrame(
                    timestamp_ms=current_time_ms,
                    detected_frequency_hz=estimate.frequency_hz,
                    is_voiced=estimate.is_voiced,
                    target_pitch=target.pitch,
                    cents_deviation=cents,
                    is_on_target=on_target,
                )
            )

    def is_on_target(self) -> bool:
        """Classification of the most recent frame (False while Idle)."""
        with self._lock:
            return self._running and self._on_target

    def end_run(self) -> RunScore:
        """Finish the run and summarise it.

        Frames are grouped by the note whose interval contains their
        timestamp. Calling this while Idle returns an empty score.
        """
        with self._lock:
            if not self._running:
                return RunScore.empty()

            self._running = False
            self._on_target = False
            duration_ms = self._clock() - self._start_ms
            frames, self._frames = self._frames, []
            harmony = self._harmony

        grouped: Dict[int, List[ScoringFrame]] = {}
        for frame in frames:
            index = _find_note_index(harmony, frame.timestamp_ms)
            if index >= 0:
                grouped.setdefault(index, []).append(frame)

        results: List[NoteResult] = []
        total_voiced = 0
        total_correct = 0

        for i, note in enumerate(harmony):
            note_frames = grouped.get(i, [])
            voiced = [f for f in note_frames if f.is_voiced]
            correct = sum(1 for f in note_frames if f.is_on_target)
            score = correct / len(note_frames) * 100.0 if note_frames else 0.0
            avg_cents = sum(abs(f.cents_deviation) for f in voiced) / len(voiced) if voiced else 0.0

            total_voiced += len(voiced)
            total_correct += correct
            results.append(
                NoteResult(
                    target_pitch=note.pitch,
                    start_ms=note.start_ms,
                    duration_ms=note.duration_ms,
                    voiced_frames=len(voiced),
                    correct_frames=correct,
                    score_percent=score,
                    avg_cents_deviation=avg_cents,
                )
            )

        overall = total_correct / len(frames) * 100.0 if frames else 0.0
        logger.info(f"Scoring run ended: {overall:.1f}% over {len(frames)} frames")

        return RunScore(
            overall_score_percent=overall,
            note_results=tuple(results),
            total_voiced_frames=total_voiced,
            total_correct_frames=total_correct,
            duration_ms=duration_ms,
        )

    # ---------- Targets ----------
    def _target_index(self, current_time_ms: float) -> int:
        index = _find_note_index(self._harmony, current_time_ms)
        if index >= 0:
            self._current_index = index
        return index

    def get_current_target(self, current_time_ms: float) -> Optional[Note]:
        """Harmony note sounding at `current_time_ms`, or None."""
        with self._lock:
            index = self._target_index(current_time_ms)
            return self._harmony[index] if index >= 0 else None

    def get_current_target_midi(self) -> int:
        """MIDI pitch of the last looked-up target (0 when none yet)."""
        with self._lock:
            if 0 <= self._current_index < len(self._harmony):
                return self._harmony[self._current_index].pitch
            return 0

    # ---------- Tolerance / live score ----------
    @property
    def tolerance_cents(self) -> float:
        return self._tolerance

    def set_tolerance(self, cents: float) -> None:
        """Change the tolerance for frames processed from now on."""
        if cents <= 0:
            raise ValueError(f"tolerance_cents must be positive: {cents}")
        with self._lock:
            self._tolerance = float(cents)

    def running_score(self) -> RunningScore:
        with self._lock:
            return RunningScore(
                frames=len(self._frames),
                voiced_frames=self._voiced_count,
                correct_frames=self._correct_count,
            )


__all__ = ["DEFAULT_TOLERANCE_CENTS", "ScoringEngine"]
