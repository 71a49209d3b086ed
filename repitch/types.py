from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from repitch.errors import LengthMismatchError


class SessionState(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    FINALIZING = "finalizing"


@dataclass
class Chunk:
    index: int
    samples: np.ndarray  # float32 mono, capture sample rate
    length: int
    pitch_ratio: float
    speed: float
    processed_audio: Optional[np.ndarray] = None
    pcm16: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        if int(self.samples.size) != int(self.length):
            raise LengthMismatchError(expected=self.length, actual=int(self.samples.size))


@dataclass(frozen=True)
class ChunkResult:
    index: int
    pcm16: Optional[np.ndarray]
    sample_rate: int
    original_speed: float
    original_pitch: float
    num_input_samples: int
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.pcm16 is not None

    @property
    def duration_sec(self) -> float:
        if self.pcm16 is None or self.sample_rate <= 0:
            return 0.0
        return float(self.pcm16.size) / float(self.sample_rate)
