from __future__ import annotations

import math

import numpy as np

from repitch.errors import InvalidRateError


def _round_half_up(x: np.ndarray) -> np.ndarray:
    return np.floor(x + 0.5).astype(np.int64)


def downsample(audio: np.ndarray, sample_rate: int, rate: int) -> np.ndarray:
    """Reduce ``audio`` from ``sample_rate`` to ``rate`` by block averaging.

    Output sample ``k`` is the mean of the input samples with indices in
    ``[round(k * ratio), round((k + 1) * ratio))``. No anti-aliasing filter is
    applied beyond the boxcar itself.
    """
    if int(rate) <= 0 or int(sample_rate) <= 0:
        raise InvalidRateError(f"Sample rates must be positive, got {sample_rate} -> {rate}")
    if int(rate) == int(sample_rate):
        return audio
    if int(rate) > int(sample_rate):
        raise InvalidRateError(
            f"Downsampling rate ({rate} Hz) must not exceed the source rate ({sample_rate} Hz)"
        )

    audio = audio.astype(np.float32, copy=False).reshape(-1)
    ratio = float(sample_rate) / float(rate)
    new_length = int(math.floor(audio.size / ratio + 0.5))
    if new_length <= 0:
        return np.zeros((0,), dtype=np.float32)

    k = np.arange(new_length + 1, dtype=np.float64)
    bounds = np.clip(_round_half_up(k * ratio), 0, audio.size)
    starts = np.minimum(bounds[:-1], audio.size - 1)
    ends = np.maximum(bounds[1:], starts + 1)

    cumsum = np.concatenate([[0.0], np.cumsum(audio, dtype=np.float64)])
    sums = cumsum[ends] - cumsum[starts]
    return (sums / (ends - starts)).astype(np.float32)
