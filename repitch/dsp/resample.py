from __future__ import annotations

import math
from fractions import Fraction

import numpy as np


def resample_audio(audio: np.ndarray, orig_sr: int, target_sr: int) -> np.ndarray:
    audio = audio.astype(np.float32, copy=False)
    if int(orig_sr) == int(target_sr):
        return audio

    try:
        from scipy.signal import resample_poly  # type: ignore
    except Exception as exc:  # pragma: no cover
        raise RuntimeError("scipy is required for resampling") from exc

    orig_sr_i = int(orig_sr)
    target_sr_i = int(target_sr)
    g = math.gcd(orig_sr_i, target_sr_i)
    up = target_sr_i // g
    down = orig_sr_i // g

    if audio.size == 0:
        return audio

    return resample_poly(audio, up=up, down=down).astype(np.float32, copy=False)


def speed_output_length(num_samples: int, speed: float) -> int:
    return int(math.floor(float(num_samples) / float(speed) + 0.5))


def change_speed(audio: np.ndarray, speed: float, *, max_denominator: int = 1000) -> np.ndarray:
    """Play ``audio`` back at ``speed`` times the normal rate.

    The result has ``round(len(audio) / speed)`` samples at the same sample
    rate, so pitch moves together with duration. Polyphase windowed-sinc
    interpolation is used; ``speed`` is approximated by a fraction whose
    denominator is at most ``max_denominator``.
    """
    if float(speed) <= 0.0:
        raise ValueError(f"Speed must be > 0, got {speed}")

    audio = audio.astype(np.float32, copy=False).reshape(-1)
    if float(speed) == 1.0 or audio.size == 0:
        return audio.copy()

    try:
        from scipy.signal import resample_poly  # type: ignore
    except Exception as exc:  # pragma: no cover
        raise RuntimeError("scipy is required for resampling") from exc

    target = speed_output_length(int(audio.size), float(speed))
    if target <= 0:
        return np.zeros((0,), dtype=np.float32)

    frac = Fraction(float(speed)).limit_denominator(int(max_denominator))
    if frac.numerator == 0:
        frac = Fraction(1, int(max_denominator))
    up = int(frac.denominator)
    down = int(frac.numerator)
    out = resample_poly(audio, up=up, down=down).astype(np.float32, copy=False)

    if out.size >= target:
        return out[:target]
    padded = np.zeros((target,), dtype=np.float32)
    padded[: out.size] = out
    return padded
