"""User-facing practice settings."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from hmcore.config import Settings
from hmmelody.harmony import HarmonyMode
from hmmelody.theory import (
    DEFAULT_MAJOR_KEY,
    SUPPORTED_KEYS,
    Difficulty,
    HarmonyInterval,
    interval_to_scale_steps,
    interval_to_semitones,
)

# Tolerance presets offered to the singer (cents)
TOLERANCE_PRESETS = (25, 50, 75, 100)


class PracticeSettings(BaseModel):
    key: str = Field(default=DEFAULT_MAJOR_KEY, description="Musical key, e.g. 'C' or 'Am'")
    harmony_interval: HarmonyInterval = Field(default=HarmonyInterval.THIRD)
    interval_mode: HarmonyMode = Field(default=HarmonyMode.DIATONIC)
    direction: int = Field(default=1, description="+1 harmony above, -1 below")
    difficulty: Difficulty = Field(default=Difficulty.MEDIUM)
    notes_per_loop: int = Field(default=4, ge=1, le=10)
    loop: bool = Field(default=True, description="Repeat the phrase until stopped")
    ghost_mode: bool = Field(default=False, description="Harmony only plays while on pitch")
    haptics_enabled: bool = Field(default=True)
    tolerance_cents: float = Field(default=50.0, gt=0.0)
    hold_threshold_ms: int = Field(default=300, ge=0)
    seed: Optional[int] = Field(default=None, description="Fixed seed; random when unset")

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        if v not in SUPPORTED_KEYS:
            raise ValueError(f"key must be one of {SUPPORTED_KEYS}")
        return v

    @field_validator("direction")
    @classmethod
    def validate_direction(cls, v: int) -> int:
        if v not in (1, -1):
            raise ValueError("direction must be 1 or -1")
        return v

    @property
    def harmony_amount(self) -> int:
        """Interval as passed to the harmony engine for the chosen mode."""
        if self.interval_mode is HarmonyMode.FIXED:
            return interval_to_semitones(self.harmony_interval)
        return interval_to_scale_steps(self.harmony_interval)

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "PracticeSettings":
        values = {
            "tolerance_cents": settings.HM_TOLERANCE_CENTS,
            "hold_threshold_ms": settings.HM_HOLD_THRESHOLD_MS,
        }
        values.update(overrides)
        return cls(**values)


__all__ = ["TOLERANCE_PRESETS", "PracticeSettings"]
