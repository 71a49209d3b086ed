from __future__ import annotations

from typing import Sequence

import numpy as np

from repitch.errors import LengthMismatchError


def merge_frames(frames: Sequence[np.ndarray], length: int) -> np.ndarray:
    total = int(sum(int(f.size) for f in frames))
    if total != int(length):
        raise LengthMismatchError(expected=int(length), actual=total)

    result = np.zeros((int(length),), dtype=np.float32)
    offset = 0
    for frame in frames:
        size = int(frame.size)
        result[offset : offset + size] = frame.reshape(-1)
        offset += size
    return result
