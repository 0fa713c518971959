"""Hold-to-confirm feedback for the live on-target flag.

Drives haptic (or any other) confirmation from the per-frame on-target
classification: one confirm event after the singer holds the target for
`hold_threshold_ms`, then a lighter pulse every `repeat_interval_ms` while
they stay on it. Timing is evaluated on each `update` call, so pulses follow
the pitch-frame cadence.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

FeedbackCallback = Callable[[], None]


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class OnTargetFeedback:
    def __init__(
        self,
        hold_threshold_ms: float = 300,
        repeat_interval_ms: float = 500,
        enabled: bool = True,
        on_confirm: Optional[FeedbackCallback] = None,
        on_pulse: Optional[FeedbackCallback] = None,
        clock: Callable[[], float] = _monotonic_ms,
    ):
        if hold_threshold_ms < 0 or repeat_interval_ms <= 0:
            raise ValueError("hold_threshold_ms must be >= 0 and repeat_interval_ms > 0")
        self.hold_threshold_ms = hold_threshold_ms
        self.repeat_interval_ms = repeat_interval_ms
        self.enabled = enabled
        self.on_confirm = on_confirm
        self.on_pulse = on_pulse
        self._clock = clock
        self._reset()

    def _reset(self) -> None:
        self._on_target = False
        self._since_ms = 0.0
        self._confirmed = False
        self._last_pulse_ms = 0.0

    @property
    def confirmed(self) -> bool:
        """True once the current on-target streak has been confirmed."""
        return self._confirmed

    def update(self, is_on_target: bool) -> None:
        """Feed the latest on-target classification (call once per frame)."""
        if not self.enabled:
            return

        now = self._clock()
        if is_on_target and not self._on_target:
            self._since_ms = now
            self._confirmed = False
        elif is_on_target:
            if not self._confirmed:
                if now - self._since_ms >= self.hold_threshold_ms:
                    self._confirmed = True
                    self._last_pulse_ms = now
                    self._fire(self.on_confirm, "confirm")
            elif now - self._last_pulse_ms >= self.repeat_interval_ms:
                self._last_pulse_ms = now
                self._fire(self.on_pulse, "pulse")
        elif self._on_target:
            self._confirmed = False

        self._on_target = is_on_target

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled
        if not enabled:
            self._reset()

    def _fire(self, callback: Optional[FeedbackCallback], kind: str) -> None:
        if callback is None:
            return
        try:
            callback()
        except Exception:
            logger.exception(f"On-target {kind} callback failed")


__all__ = ["FeedbackCallback", "OnTargetFeedback"]
