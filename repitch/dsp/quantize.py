from __future__ import annotations

import numpy as np


def float_to_pcm16(audio: np.ndarray) -> np.ndarray:
    x = np.clip(audio.astype(np.float64, copy=False).reshape(-1), -1.0, 1.0)
    scaled = np.where(x < 0, x * 32768.0, x * 32767.0)
    # astype truncates toward zero
    return scaled.astype(np.int16)


def pcm16_to_float(pcm: np.ndarray) -> np.ndarray:
    """Map int16 samples back to floats at the centre of their truncation bin.

    ``float_to_pcm16(pcm16_to_float(pcm))`` reproduces ``pcm`` exactly.
    """
    x = pcm.astype(np.float64, copy=False).reshape(-1)
    centred = np.where(x > 0, (x + 0.5) / 32767.0, np.where(x < 0, (x - 0.5) / 32768.0, 0.0))
    return np.clip(centred, -1.0, 1.0).astype(np.float32)
