"""Pitch analysis backends.

Two implementations of the same YIN contract: the numpy one that always
works, and a Numba JIT-compiled kernel used when numba is installed. The
choice is made once, by capability detection, when a detector is built.
"""

from __future__ import annotations

import importlib.util
import logging
from typing import Protocol

import numpy as np

from .yin import CmndKernel, YinParams, YinResult, detect_pitch

logger = logging.getLogger(__name__)

BACKEND_CHOICES = ("auto", "yin", "numba")


class PitchBackend(Protocol):
    """Analyses one buffer of samples."""

    name: str

    def analyze(self, buffer: np.ndarray, params: YinParams) -> YinResult:
        ...


class SoftwareYinBackend:
    """Pure numpy YIN."""

    name = "yin"

    def analyze(self, buffer: np.ndarray, params: YinParams) -> YinResult:
        return detect_pitch(buffer, params)


def _build_numba_kernel() -> CmndKernel:
    from numba import njit

    @njit
    def cmnd_kernel(x, size):
        cmnd = np.empty(size, dtype=np.float64)
        cmnd[0] = 1.0
        running_sum = 0.0
        for tau in range(1, size):
            acc = 0.0
            for i in range(size):
                delta = x[i] - x[i + tau]
                acc += delta * delta
            running_sum += acc
            if running_sum > 0.0:
                cmnd[tau] = acc * tau / running_sum
            else:
                cmnd[tau] = 1.0
        return cmnd

    return cmnd_kernel


class NumbaYinBackend:
    """YIN with the difference/CMND loops compiled by Numba.

    The first call pays the JIT compilation cost.
    """

    name = "numba"

    def __init__(self):
        self._kernel = _build_numba_kernel()

    def _cmnd(self, x: np.ndarray, size: int) -> np.ndarray:
        return self._kernel(np.ascontiguousarray(x, dtype=np.float64), size)

    def analyze(self, buffer: np.ndarray, params: YinParams) -> YinResult:
        return detect_pitch(buffer, params, kernel=self._cmnd)


def numba_available() -> bool:
    return importlib.util.find_spec("numba") is not None


def select_backend(preference: str = "auto") -> PitchBackend:
    """Pick the analysis backend.

    Args:
        preference: 'auto' (numba when installed, else yin), 'yin' or 'numba'

    Raises:
        ValueError: unknown preference, or 'numba' requested but not installed
    """
    preference = preference.strip().lower()
    if preference not in BACKEND_CHOICES:
        raise ValueError(f"Unknown pitch backend: {preference} (expected one of {BACKEND_CHOICES})")

    if preference == "yin":
        backend: PitchBackend = SoftwareYinBackend()
    elif numba_available():
        backend = NumbaYinBackend()
    elif preference == "numba":
        raise ValueError("Pitch backend 'numba' requested but numba is not installed")
    else:
        backend = SoftwareYinBackend()

    logger.debug(f"Selected pitch backend: {backend.name}")
    return backend


__all__ = [
    "BACKEND_CHOICES",
    "PitchBackend",
    "SoftwareYinBackend",
    "NumbaYinBackend",
    "numba_available",
    "select_backend",
]
