from __future__ import annotations

import queue
from dataclasses import dataclass
from typing import Protocol, Union

import numpy as np


@dataclass
class AudioFrame:
    samples: np.ndarray  # float32 mono
    sample_rate: int


@dataclass(frozen=True)
class CaptureFailure:
    message: str


CaptureItem = Union[AudioFrame, CaptureFailure]


class CaptureSource(Protocol):
    @property
    def queue(self) -> "queue.Queue[CaptureItem]": ...

    def start(self, preferred_sample_rate: int, block_size: int) -> int: ...

    def stop(self) -> None: ...
