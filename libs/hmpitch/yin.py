"""YIN fundamental frequency estimation.

Reference: De Cheveigne, A., & Kawahara, H. (2002). "YIN, a fundamental
frequency estimator for speech and music".

Pipeline per buffer: RMS gate, difference function, cumulative mean
normalized difference (CMND), absolute threshold with local-minimum
refinement, parabolic interpolation, band check.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Callable, Optional

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

# (samples, window_size) -> CMND array of length window_size
CmndKernel = Callable[[np.ndarray, int], np.ndarray]


@dataclass(frozen=True)
class YinParams:
    """YIN analysis parameters."""

    sample_rate: int = 44100
    threshold: float = 0.15
    min_frequency: float = 50.0
    max_frequency: float = 800.0
    min_volume: float = 0.01


@dataclass(frozen=True)
class YinResult:
    """Per-buffer YIN output (pitch is 0 when unvoiced)."""

    pitch: float
    is_voiced: bool
    probability: float


UNVOICED = YinResult(pitch=0.0, is_voiced=False, probability=0.0)


def rms(buffer: np.ndarray) -> float:
    if len(buffer) == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(buffer, dtype=np.float64))))


def window_size(num_samples: int, params: YinParams) -> int:
    """Lags analysed: floor(sr / min_frequency) + 1, capped at half the buffer."""
    max_tau = int(params.sample_rate // params.min_frequency)
    return min(max_tau + 1, num_samples // 2)


def difference_function(x: np.ndarray, size: int) -> np.ndarray:
    """d(tau) = sum_i (x[i] - x[i + tau])^2 for tau in [0, size)."""
    lagged = sliding_window_view(x, size)[:size]
    delta = x[:size] - lagged
    return np.einsum("ij,ij->i", delta, delta)


def cumulative_mean_normalized_difference(diff: np.ndarray) -> np.ndarray:
    """d'(0) = 1; d'(tau) = d(tau) * tau / sum(d[1..tau])."""
    cmnd = np.empty_like(diff, dtype=np.float64)
    cmnd[0] = 1.0
    if len(diff) > 1:
        running = np.cumsum(diff[1:])
        taus = np.arange(1, len(diff))
        with np.errstate(divide="ignore", invalid="ignore"):
            normalized = diff[1:] * taus / running
        cmnd[1:] = np.where(running > 0, normalized, 1.0)
    return cmnd


def numpy_cmnd(x: np.ndarray, size: int) -> np.ndarray:
    return cumulative_mean_normalized_difference(difference_function(x, size))


def absolute_threshold(cmnd: np.ndarray, threshold: float) -> int:
    """First lag >= 2 with d' below threshold, walked down to its local minimum.

    Returns -1 if no lag crosses the threshold.
    """
    below = np.flatnonzero(cmnd[2:] < threshold)
    if below.size == 0:
        return -1

    tau = int(below[0]) + 2
    size = len(cmnd)
    while tau + 1 < size and cmnd[tau + 1] < cmnd[tau]:
        tau += 1
    return tau


def parabolic_interpolation(cmnd: np.ndarray, tau: int) -> float:
    """Refine tau to sub-sample precision; falls back to tau when degenerate."""
    if tau < 1 or tau + 1 >= len(cmnd):
        return float(tau)

    s0 = float(cmnd[tau - 1])
    s1 = float(cmnd[tau])
    s2 = float(cmnd[tau + 1])
    denominator = 2.0 * (2.0 * s1 - s2 - s0)
    if denominator == 0.0:
        return float(tau)

    adjustment = (s2 - s0) / denominator
    if not math.isfinite(adjustment):
        return float(tau)
    return tau + adjustment


def detect_pitch(
    buffer: np.ndarray,
    params: Optional[YinParams] = None,
    kernel: Optional[CmndKernel] = None,
    **overrides,
) -> YinResult:
    """Estimate the fundamental frequency of one audio buffer.

    Args:
        buffer: Mono samples in [-1, 1]
        params: YIN parameters (defaults: 44.1 kHz, threshold 0.15, 50-800 Hz)
        kernel: Optional CMND implementation (defaults to the numpy one)
        **overrides: Individual YinParams fields, e.g. sample_rate=48000

    Returns:
        YinResult; unvoiced for short, quiet or aperiodic buffers and for
        pitches outside [min_frequency, max_frequency].
    """
    params = replace(params or YinParams(), **overrides)
    x = np.asarray(buffer, dtype=np.float64).ravel()

    size = window_size(len(x), params)
    if size < 3 or len(x) < size * 2:
        return UNVOICED

    # Signal too weak
    if rms(x) < params.min_volume:
        return UNVOICED

    cmnd = (kernel or numpy_cmnd)(x, size)

    tau = absolute_threshold(cmnd, params.threshold)
    if tau == -1:
        return UNVOICED

    min_tau = int(params.sample_rate // params.max_frequency)
    if tau < min_tau:
        tau = min_tau

    better_tau = parabolic_interpolation(cmnd, tau)
    if better_tau <= 0:
        return UNVOICED

    pitch = params.sample_rate / better_tau
    if pitch < params.min_frequency or pitch > params.max_frequency:
        return UNVOICED

    probability = 1.0 - float(cmnd[tau])
    return YinResult(pitch=pitch, is_voiced=True, probability=max(0.0, min(1.0, probability)))


__all__ = [
    "CmndKernel",
    "YinParams",
    "YinResult",
    "UNVOICED",
    "rms",
    "window_size",
    "difference_function",
    "cumulative_mean_normalized_difference",
    "numpy_cmnd",
    "absolute_threshold",
    "parabolic_interpolation",
    "detect_pitch",
]
