"""Streaming pitch detection service.

Audio arrives in hop-sized blocks and slides a rolling window of
`buffer_size` samples; the YIN backend runs on the full window after every
block, so estimates are published at the hop rate (~50 Hz by default) while
each analysis still sees a whole buffer. Results are median-smoothed and
handed to registered listeners as PitchEstimate objects.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterator, List, Optional

import numpy as np

from hmcore.config import Settings

from .backends import PitchBackend, select_backend
from .errors import MicrophonePermissionError
from .smoothing import MedianPitchSmoother
from .sources import AudioSource, MicrophoneSource, request_microphone_access
from .yin import UNVOICED, YinParams

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PitchEstimate:
    """Smoothed pitch reading for one analysis block."""

    frequency_hz: float
    is_voiced: bool
    confidence: float
    timestamp_ms: float

    @classmethod
    def silent(cls, timestamp_ms: float = 0.0) -> "PitchEstimate":
        return cls(frequency_hz=0.0, is_voiced=False, confidence=0.0, timestamp_ms=timestamp_ms)


PitchListener = Callable[[PitchEstimate], None]
PermissionRequest = Callable[[], Awaitable[bool]]


@dataclass(frozen=True)
class PitchDetectorConfig:
    """Detector configuration (singing range defaults: E2..B5)."""

    sample_rate: int = 44100
    buffer_size: int = 2048
    min_frequency: float = 80.0
    max_frequency: float = 1000.0
    threshold: float = 0.15
    min_volume: float = 0.01
    smoothing_window: int = 5
    backend: str = "auto"
    estimate_rate_hz: float = 50.0

    def __post_init__(self):
        if self.min_frequency <= 0 or self.min_frequency >= self.max_frequency:
            raise ValueError(
                f"Invalid frequency band: {self.min_frequency}-{self.max_frequency} Hz"
            )
        if self.estimate_rate_hz <= 0:
            raise ValueError(f"estimate_rate_hz must be positive: {self.estimate_rate_hz}")

    @property
    def hop_size(self) -> int:
        """Samples between estimates (882 at 44.1 kHz / 50 Hz), capped at one buffer."""
        return max(1, min(self.buffer_size, int(self.sample_rate / self.estimate_rate_hz)))

    @classmethod
    def from_settings(cls, settings: Settings) -> "PitchDetectorConfig":
        return cls(
            sample_rate=settings.HM_SAMPLE_RATE,
            buffer_size=settings.HM_BUFFER_SIZE,
            min_frequency=settings.HM_MIN_FREQUENCY,
            max_frequency=settings.HM_MAX_FREQUENCY,
            threshold=settings.HM_YIN_THRESHOLD,
            min_volume=settings.HM_MIN_VOLUME,
            backend=settings.HM_PITCH_BACKEND,
        )

    def yin_params(self) -> YinParams:
        return YinParams(
            sample_rate=self.sample_rate,
            threshold=self.threshold,
            min_frequency=self.min_frequency,
            max_frequency=self.max_frequency,
            min_volume=self.min_volume,
        )


class PitchDetector:
    """Real-time pitch detector with listener registration.

    Listeners are called on whichever thread the source delivers audio on
    (the PortAudio thread for a microphone). A listener that raises is
    logged and skipped; the others still receive the estimate.
    """

    def __init__(
        self,
        source: Optional[AudioSource] = None,
        config: Optional[PitchDetectorConfig] = None,
        backend: Optional[PitchBackend] = None,
        permission: Optional[PermissionRequest] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or PitchDetectorConfig()
        self.source = source or MicrophoneSource(
            sample_rate=self.config.sample_rate,
            block_size=self.config.hop_size,
        )
        self.backend = backend or select_backend(self.config.backend)
        self._permission = permission or request_microphone_access
        self._permission_granted = False
        self._clock = clock
        self._params = self.config.yin_params()
        self._smoother = MedianPitchSmoother(self.config.smoothing_window)
        self._listeners: List[PitchListener] = []
        self._listeners_lock = threading.Lock()
        self._window = np.zeros(self.config.buffer_size, dtype=np.float32)
        self._filled = 0
        self._running = False
        self._last = PitchEstimate.silent()

    # ---------- Lifecycle ----------
    async def start(self) -> None:
        """Start listening.

        Raises:
            MicrophonePermissionError: access denied / no input device
            AudioSourceError: the source failed to open
        """
        if self._running:
            return

        if not self._permission_granted:
            granted = await self._permission()
            if not granted:
                logger.warning("Microphone permission not granted")
                raise MicrophonePermissionError("Microphone permission not granted")
            self._permission_granted = True

        self._smoother.reset()
        self._filled = 0
        self._running = True
        try:
            self.source.open(self._on_audio)
        except Exception:
            self._running = False
            raise
        logger.info(f"Pitch detection started (backend={self.backend.name})")

    def stop(self) -> None:
        """Stop listening. Safe to call when already stopped."""
        if not self._running:
            return
        self._running = False
        self.source.close()
        self._smoother.reset()
        logger.info("Pitch detection stopped")

    def dispose(self) -> None:
        self.stop()
        with self._listeners_lock:
            self._listeners.clear()

    def is_running(self) -> bool:
        return self._running

    # ---------- Listeners ----------
    def on_pitch(self, listener: PitchListener) -> None:
        with self._listeners_lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def off_pitch(self, listener: PitchListener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @contextmanager
    def subscribe(self, listener: PitchListener) -> Iterator[PitchListener]:
        """Register `listener` for the duration of a with-block."""
        self.on_pitch(listener)
        try:
            yield listener
        finally:
            self.off_pitch(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _emit(self, estimate: PitchEstimate) -> None:
        with self._listeners_lock:
            listeners = tuple(self._listeners)
        for listener in listeners:
            try:
                listener(estimate)
            except Exception:
                logger.exception(f"Pitch listener {listener!r} failed")

    # ---------- Analysis ----------
    @property
    def last_estimate(self) -> PitchEstimate:
        return self._last

    def _on_audio(self, samples: np.ndarray) -> None:
        if not self._running:
            return

        size = len(self._window)
        samples = np.asarray(samples, dtype=np.float32)
        if len(samples) >= size:
            self._window = samples[-size:].copy()
        else:
            self._window = np.concatenate((self._window[len(samples):], samples))
        self._filled = min(size, self._filled + len(samples))

        # No estimate until the first full window
        if self._filled < size:
            return
        self.process_buffer(self._window)

    def process_buffer(self, samples: np.ndarray, timestamp_ms: Optional[float] = None) -> PitchEstimate:
        """Analyse one block, smooth it and publish the estimate.

        Analysis failures are logged and reported as an unvoiced estimate.
        """
        if timestamp_ms is None:
            timestamp_ms = self._clock() * 1000.0

        try:
            result = self.backend.analyze(samples, self._params)
        except Exception:
            logger.exception("Pitch analysis failed; reporting unvoiced")
            result = UNVOICED

        smoothed = self._smoother.add(result.pitch if result.is_voiced else 0.0)
        voiced = smoothed > 0
        estimate = PitchEstimate(
            frequency_hz=smoothed,
            is_voiced=voiced,
            confidence=result.probability if voiced else 0.0,
            timestamp_ms=timestamp_ms,
        )

        self._last = estimate
        self._emit(estimate)
        return estimate


__all__ = [
    "PitchEstimate",
    "PitchListener",
    "PermissionRequest",
    "PitchDetectorConfig",
    "PitchDetector",
]
