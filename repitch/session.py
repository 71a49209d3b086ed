from __future__ import annotations

import logging
import threading
from typing import Optional, Union

import numpy as np

from repitch.dsp import merge_frames
from repitch.errors import SessionStateError
from repitch.pipeline import process_chunks
from repitch.types import Chunk, ChunkResult, SessionState

logger = logging.getLogger(__name__)


def _parse_positive(value: Union[float, str], name: str) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc
    if not parsed > 0.0:
        raise ValueError(f"{name} must be > 0, got {parsed}")
    return parsed


class SessionParameters:
    """User-adjustable pitch/speed, read by the session each time a chunk closes."""

    def __init__(self, *, pitch_ratio: float = 1.0, speed: float = 1.0) -> None:
        self._lock = threading.Lock()
        self._pitch_ratio = _parse_positive(pitch_ratio, "pitch")
        self._speed = _parse_positive(speed, "speed")

    @property
    def pitch_ratio(self) -> float:
        with self._lock:
            return float(self._pitch_ratio)

    @property
    def speed(self) -> float:
        with self._lock:
            return float(self._speed)

    def snapshot(self) -> tuple[float, float]:
        with self._lock:
            return float(self._pitch_ratio), float(self._speed)

    def set_pitch(self, value: Union[float, str]) -> None:
        parsed = _parse_positive(value, "pitch")
        with self._lock:
            self._pitch_ratio = parsed

    def set_speed(self, value: Union[float, str]) -> None:
        parsed = _parse_positive(value, "speed")
        with self._lock:
            self._speed = parsed

    def pitch_text(self) -> str:
        return f"{self.pitch_ratio:.1f}"

    def speed_text(self) -> str:
        return f"{self.speed:.1f}"


class ChunkSession:
    """Rotates captured frames into tagged chunks and finalizes them.

    Not thread-safe: every call must come from the single consumer that owns
    the session (see ``ChunkRecorder``).
    """

    def __init__(
        self,
        parameters: Optional[SessionParameters] = None,
        *,
        target_rate: int = 16000,
        grain_size: Optional[int] = None,
        grain_hop: Optional[int] = None,
        workers: int = 1,
    ) -> None:
        self._parameters = parameters if parameters is not None else SessionParameters()
        self._target_rate = int(target_rate)
        self._grain_size = grain_size
        self._grain_hop = grain_hop
        self._workers = int(workers)

        self._state = SessionState.IDLE
        self._sample_rate = 0
        self._frames: list[np.ndarray] = []
        self._length = 0
        self._chunks: list[Chunk] = []
        self._total_closed = 0
        self._next_index = 0

    @property
    def parameters(self) -> SessionParameters:
        return self._parameters

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def sample_rate(self) -> int:
        return int(self._sample_rate)

    @property
    def chunks(self) -> list[Chunk]:
        return list(self._chunks)

    @property
    def pending_samples(self) -> int:
        return int(self._length)

    @property
    def total_closed_samples(self) -> int:
        return int(self._total_closed)

    @property
    def chunk_samples(self) -> int:
        return int(sum(c.length for c in self._chunks))

    def _require(self, state: SessionState, action: str) -> None:
        if self._state != state:
            raise SessionStateError(f"Cannot {action} while session is {self._state.value}")

    def _clear_accumulator(self) -> None:
        self._frames = []
        self._length = 0

    def _close_accumulator(self) -> Optional[Chunk]:
        if not self._frames or self._length <= 0:
            return None
        pitch_ratio, speed = self._parameters.snapshot()
        chunk = Chunk(
            index=self._next_index,
            samples=merge_frames(self._frames, self._length),
            length=int(self._length),
            pitch_ratio=pitch_ratio,
            speed=speed,
        )
        self._next_index += 1
        self._chunks.append(chunk)
        logger.debug(
            "Closed chunk %d: %d samples, pitch=%.2f speed=%.2f",
            chunk.index,
            chunk.length,
            chunk.pitch_ratio,
            chunk.speed,
        )
        return chunk

    def begin(self, sample_rate: int) -> None:
        self._require(SessionState.IDLE, "begin")
        if int(sample_rate) <= 0:
            raise ValueError(f"sample_rate must be > 0, got {sample_rate}")
        self._sample_rate = int(sample_rate)
        self._clear_accumulator()
        self._chunks = []
        self._total_closed = 0
        self._next_index = 0
        self._state = SessionState.CAPTURING
        logger.info("Session started at %d Hz", self._sample_rate)

    def push(self, samples: np.ndarray) -> None:
        self._require(SessionState.CAPTURING, "accept frames")
        frame = np.array(samples, dtype=np.float32, copy=True).reshape(-1)
        if frame.size == 0:
            return
        self._frames.append(frame)
        self._length += int(frame.size)

    def rotate(self) -> Optional[Chunk]:
        self._require(SessionState.CAPTURING, "rotate")
        chunk = self._close_accumulator()
        self._total_closed += int(self._length)
        self._clear_accumulator()
        return chunk

    def reconcile(self) -> Optional[Chunk]:
        """Teardown pass: make sure no captured sample is left outside a chunk."""
        self._require(SessionState.CAPTURING, "reconcile")
        self._total_closed += int(self._length)
        chunk = None
        if self.chunk_samples != self._total_closed:
            chunk = self._close_accumulator()
            logger.info(
                "Reconciled %d unflushed sample(s) into a final chunk",
                0 if chunk is None else chunk.length,
            )
        self._clear_accumulator()
        return chunk

    def finish(self) -> list[ChunkResult]:
        self._require(SessionState.CAPTURING, "finish")
        self.reconcile()
        self._state = SessionState.FINALIZING
        try:
            results = process_chunks(
                self._chunks,
                sample_rate=self._sample_rate,
                target_rate=self._target_rate,
                grain_size=self._grain_size,
                grain_hop=self._grain_hop,
                workers=self._workers,
            )
        finally:
            self._chunks = []
            self._clear_accumulator()
            self._state = SessionState.IDLE
        return results
