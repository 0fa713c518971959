"""Practice session controller.

A `PracticeSession` owns one instance of every component (generator,
harmony engine, detector, scoring engine, feedback tracker, playback clock)
for its own lifetime; nothing is shared between sessions.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import replace
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from hmcore.audio import frame_signal, to_mono
from hmcore.config import get_settings
from hmmelody.generator import GenerationParams, Note, SeededMelodyGenerator, melody_duration_ms
from hmmelody.harmony import HarmonyEngine, HarmonyParams
from hmpitch.detector import PitchDetector, PitchDetectorConfig, PitchEstimate
from hmpitch.sources import BufferedSource
from hmscoring.engine import ScoringEngine
from hmscoring.feedback import FeedbackCallback, OnTargetFeedback
from hmscoring.models import RunScore

from .clock import PlaybackClock
from .settings import PracticeSettings
from .synth import render_practice_mix

logger = logging.getLogger(__name__)

# Offline analysis hop, matching the ~50 Hz live estimate rate
DEFAULT_HOP_MS = 20.0


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class PracticeSession:
    """One practice session: generate a phrase, listen, score.

    Args:
        settings: Practice settings; tolerance and hold time come from the
            HM_* environment when omitted
        detector: Pitch detector; a microphone detector configured from the
            HM_* environment is built when omitted
        clock: Millisecond clock shared by playback, scoring and feedback
        on_confirm: Called once the singer holds the target
        on_pulse: Called periodically while the singer stays on target
    """

    def __init__(
        self,
        settings: Optional[PracticeSettings] = None,
        detector: Optional[PitchDetector] = None,
        clock: Callable[[], float] = _monotonic_ms,
        on_confirm: Optional[FeedbackCallback] = None,
        on_pulse: Optional[FeedbackCallback] = None,
    ):
        self.settings = settings or PracticeSettings.from_settings(get_settings())
        self.generator = SeededMelodyGenerator()
        self.harmony_engine = HarmonyEngine()
        self.scoring = ScoringEngine(tolerance_cents=self.settings.tolerance_cents, clock=clock)
        self.feedback = OnTargetFeedback(
            hold_threshold_ms=self.settings.hold_threshold_ms,
            enabled=self.settings.haptics_enabled,
            on_confirm=on_confirm,
            on_pulse=on_pulse,
            clock=clock,
        )
        self.detector = detector or PitchDetector(config=PitchDetectorConfig.from_settings(get_settings()))
        self.playback = PlaybackClock(loop=self.settings.loop, clock=clock)

        self.seed: Optional[int] = None
        self.melody: List[Note] = []
        self.harmony: List[Note] = []
        self.harmony_muted = self.settings.ghost_mode
        # Guards feedback and harmony_muted, written from the audio thread
        self._state_lock = threading.RLock()

    # ---------- Phrase ----------
    def prepare(self, seed: Optional[int] = None) -> Tuple[List[Note], List[Note]]:
        """Generate the melody and its harmony.

        The seed is taken from the argument, then the settings, then drawn
        at random.
        """
        if seed is None:
            seed = self.settings.seed
        if seed is None:
            seed = random.getrandbits(32)

        s = self.settings
        params = GenerationParams(seed=seed, key=s.key, difficulty=s.difficulty, note_count=s.notes_per_loop)
        self.seed = params.seed
        self.melody = self.generator.generate(params)
        self.harmony = self.harmony_engine.compute_harmony(
            HarmonyParams(
                melody=self.melody,
                interval=s.harmony_amount,
                mode=s.interval_mode,
                key=s.key,
                direction=s.direction,
            )
        )
        self.playback.phrase_ms = melody_duration_ms(self.melody)
        logger.info(f"Prepared phrase seed={self.seed} key={s.key} notes={len(self.melody)}")
        return self.melody, self.harmony

    def render_mix(self, sample_rate: Optional[int] = None) -> np.ndarray:
        """Render melody + harmony, honouring the current ghost-mode muting."""
        sample_rate = sample_rate or self.detector.config.sample_rate
        return render_practice_mix(self.melody, self.harmony, sample_rate, harmony_muted=self.harmony_muted)

    # ---------- Lifecycle ----------
    @property
    def is_running(self) -> bool:
        return self.scoring.is_running

    async def start(self) -> None:
        """Start listening and scoring.

        Raises:
            MicrophonePermissionError: microphone access denied
        """
        if self.is_running:
            return
        if not self.melody:
            self.prepare()

        await self.detector.start()
        self.detector.on_pitch(self._on_pitch)
        with self._state_lock:
            self.harmony_muted = self.settings.ghost_mode
        self.scoring.start_run(self.harmony)
        self.playback.play()

    def stop(self) -> Optional[RunScore]:
        """Stop the run; returns its score, or None when none was active."""
        self.detector.off_pitch(self._on_pitch)
        self.detector.stop()
        self.playback.stop()
        with self._state_lock:
            self.feedback.update(False)
            self.harmony_muted = self.settings.ghost_mode

        if not self.scoring.is_running:
            return None
        return self.scoring.end_run()

    def close(self) -> None:
        self.stop()
        self.detector.dispose()

    async def __aenter__(self) -> "PracticeSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _on_pitch(self, estimate: PitchEstimate) -> None:
        with self._state_lock:
            self.scoring.process_pitch(estimate, self.playback.position_ms())
            on_target = self.scoring.is_on_target()
            self.feedback.update(on_target)
            if self.settings.ghost_mode:
                self.harmony_muted = not on_target


def _offline_detector(sample_rate: int, config: Optional[PitchDetectorConfig]) -> PitchDetector:
    config = replace(config or PitchDetectorConfig(), sample_rate=sample_rate)
    return PitchDetector(
        source=BufferedSource(sample_rate=sample_rate, block_size=config.buffer_size),
        config=config,
    )


def _blocks(samples: np.ndarray, sample_rate: int, block_size: int, hop_ms: float):
    hop = max(1, int(sample_rate * hop_ms / 1000.0))
    for start, block in frame_signal(to_mono(samples), block_size, hop):
        yield start / sample_rate * 1000.0, block


def track_pitch(
    samples: np.ndarray,
    sample_rate: int,
    config: Optional[PitchDetectorConfig] = None,
    hop_ms: float = DEFAULT_HOP_MS,
) -> List[PitchEstimate]:
    """Smoothed pitch track of a recording, one estimate per hop."""
    detector = _offline_detector(sample_rate, config)
    return [
        detector.process_buffer(block, timestamp_ms=ts)
        for ts, block in _blocks(samples, sample_rate, detector.config.buffer_size, hop_ms)
    ]


def score_take(
    samples: np.ndarray,
    sample_rate: int,
    harmony: Sequence[Note],
    tolerance_cents: float = 50.0,
    config: Optional[PitchDetectorConfig] = None,
    hop_ms: float = DEFAULT_HOP_MS,
) -> RunScore:
    """Score a recorded take against a harmony line.

    The take is assumed to start with the phrase; each analysis block is
    scored at its start time. The run duration is the take length.
    """
    detector = _offline_detector(sample_rate, config)
    position = [0.0]
    scoring = ScoringEngine(tolerance_cents=tolerance_cents, clock=lambda: position[0])

    scoring.start_run(harmony)
    for ts, block in _blocks(samples, sample_rate, detector.config.buffer_size, hop_ms):
        scoring.process_pitch(detector.process_buffer(block, timestamp_ms=ts), ts)

    position[0] = len(samples) / sample_rate * 1000.0
    return scoring.end_run()


__all__ = ["DEFAULT_HOP_MS", "PracticeSession", "track_pitch", "score_take"]
