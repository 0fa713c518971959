"""Configuration loading for Harmonist practice components.

Reads environment variables into a typed settings object using Pydantic v2.

Env variables (see .env.example):
- HM_LOG_LEVEL (default: INFO)
- HM_ENV (default: development)
- HM_OTEL_ENDPOINT (optional)
- HM_SAMPLE_RATE (default: 44100)
- HM_BUFFER_SIZE (default: 2048)
- HM_MIN_FREQUENCY / HM_MAX_FREQUENCY (default: 80 / 1000 Hz)
- HM_YIN_THRESHOLD (default: 0.15)
- HM_MIN_VOLUME (default: 0.01)
- HM_TOLERANCE_CENTS (default: 50)
- HM_PITCH_BACKEND (default: auto)
- HM_HOLD_THRESHOLD_MS (default: 300)
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class Settings(BaseModel):
    HM_LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    HM_ENV: str = Field(default="development", description="Environment name")
    HM_OTEL_ENDPOINT: Optional[str] = Field(
        default=None, description="OTLP HTTP endpoint (e.g., http://localhost:4318)"
    )

    # Pitch detection
    HM_SAMPLE_RATE: int = Field(default=44100, ge=8000, le=192000)
    HM_BUFFER_SIZE: int = Field(default=2048, ge=256, description="Samples per analysis buffer")
    HM_MIN_FREQUENCY: float = Field(default=80.0, gt=0.0)
    HM_MAX_FREQUENCY: float = Field(default=1000.0, gt=0.0)
    HM_YIN_THRESHOLD: float = Field(default=0.15, gt=0.0, lt=1.0)
    HM_MIN_VOLUME: float = Field(default=0.01, ge=0.0)
    HM_PITCH_BACKEND: str = Field(default="auto", description="auto, yin or numba")

    # Scoring / feedback
    HM_TOLERANCE_CENTS: float = Field(default=50.0, gt=0.0)
    HM_HOLD_THRESHOLD_MS: int = Field(default=300, ge=0)

    class Config:
        extra = "ignore"

    @model_validator(mode="after")
    def check_frequency_band(self) -> "Settings":
        if self.HM_MIN_FREQUENCY >= self.HM_MAX_FREQUENCY:
            raise ValueError("HM_MIN_FREQUENCY must be below HM_MAX_FREQUENCY")
        return self


_ENV_KEYS = (
    "HM_LOG_LEVEL",
    "HM_ENV",
    "HM_OTEL_ENDPOINT",
    "HM_SAMPLE_RATE",
    "HM_BUFFER_SIZE",
    "HM_MIN_FREQUENCY",
    "HM_MAX_FREQUENCY",
    "HM_YIN_THRESHOLD",
    "HM_MIN_VOLUME",
    "HM_PITCH_BACKEND",
    "HM_TOLERANCE_CENTS",
    "HM_HOLD_THRESHOLD_MS",
)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment and memoize.

    Unset variables keep their defaults.

    Raises:
        ValueError: if a variable is present but invalid.
    """
    env = {k: os.getenv(k) for k in _ENV_KEYS}
    env = {k: v for k, v in env.items() if v not in (None, "")}
    return Settings.model_validate(env)


__all__ = ["Settings", "get_settings"]
