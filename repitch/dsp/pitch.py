from __future__ import annotations

from typing import Optional

import numpy as np


def hann_window(n: int) -> np.ndarray:
    return np.hanning(int(n)).astype(np.float32, copy=False)


def _linear_interpolation(a: np.ndarray, b: np.ndarray, t: np.ndarray) -> np.ndarray:
    return a + (b - a) * t


def _shift_grain(grain: np.ndarray, ratio: float, window: np.ndarray) -> np.ndarray:
    n = int(grain.size)
    analysed = grain * window

    positions = np.arange(n, dtype=np.float64) * float(ratio)
    index = np.floor(positions).astype(np.int64) % n
    frac = np.mod(positions, 1.0).astype(np.float32)

    a = analysed[index]
    b = analysed[(index + 1) % n]
    return (_linear_interpolation(a, b, frac) * window).astype(np.float32, copy=False)


def shift_pitch(
    samples: np.ndarray,
    ratio: float,
    *,
    grain_size: Optional[int] = None,
    hop: Optional[int] = None,
) -> np.ndarray:
    """Granular pitch shift that keeps the duration of ``samples``.

    Each grain is Hann-windowed, read back cyclically at ``ratio`` times the
    original rate with linear interpolation, windowed again and overlap-added
    into a working buffer of ``len(samples) + grain_size`` samples.

    By default the whole buffer is a single grain and the hop equals the grain
    length, so exactly one grain is synthesised per call and its edges are
    faded by the window. Passing a smaller ``grain_size`` (and optionally
    ``hop < grain_size``) gives finer overlap at the cost of more work.
    A ratio of 1.0 runs the same path as any other ratio.
    """
    if float(ratio) <= 0.0:
        raise ValueError(f"Pitch ratio must be > 0, got {ratio}")

    samples = samples.astype(np.float32, copy=False).reshape(-1)
    n = int(samples.size)
    if n == 0:
        return np.zeros((0,), dtype=np.float32)

    requested = n if grain_size is None else int(grain_size)
    step = requested if hop is None else int(hop)
    if requested <= 0 or step <= 0:
        raise ValueError("grain_size and hop must be > 0")
    if step > requested:
        raise ValueError(f"hop ({step}) must not exceed grain_size ({requested})")
    size = min(requested, n)
    step = min(step, size)

    window = hann_window(size)
    working = np.zeros((n + size,), dtype=np.float32)

    for offset in range(0, n, step):
        grain = samples[offset : offset + size]
        if grain.size < size:
            padded = np.zeros((size,), dtype=np.float32)
            padded[: grain.size] = grain
            grain = padded
        working[offset : offset + size] += _shift_grain(grain, ratio, window)

    if step < size:
        # Hann analysis+synthesis overlap-added every `step` samples.
        working /= float(np.sum(np.square(window)) / step)

    return working[:n].copy()
