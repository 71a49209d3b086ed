"""Shared pytest fixtures for the repitch test suite."""

from __future__ import annotations

import queue
import sys
import time
from pathlib import Path
from typing import Callable, Optional, Sequence

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from repitch.audio.frame import AudioFrame, CaptureFailure, CaptureItem  # noqa: E402
from repitch.types import ChunkResult  # noqa: E402


class FakeCapture:
    """In-memory capture source; the test pushes frames by hand."""

    def __init__(self, sample_rate: int = 48000, *, error: Optional[Exception] = None) -> None:
        self.sample_rate = int(sample_rate)
        self.error = error
        self.started = False
        self.stop_calls = 0
        self.block_size = 0
        self._queue: "queue.Queue[CaptureItem]" = queue.Queue()

    @property
    def queue(self) -> "queue.Queue[CaptureItem]":
        return self._queue

    def start(self, preferred_sample_rate: int, block_size: int) -> int:
        if self.error is not None:
            raise self.error
        self.started = True
        self.block_size = int(block_size)
        return self.sample_rate

    def stop(self) -> None:
        self.started = False
        self.stop_calls += 1

    def push(self, n: int = 2048, value: float = 0.1) -> None:
        samples = np.full((int(n),), float(value), dtype=np.float32)
        self._queue.put(AudioFrame(samples=samples, sample_rate=self.sample_rate))

    def fail(self, message: str) -> None:
        self._queue.put(CaptureFailure(message))


class ListSink:
    def __init__(self) -> None:
        self.delivered: list[list[ChunkResult]] = []

    def deliver(self, results: Sequence[ChunkResult]) -> None:
        self.delivered.append(list(results))


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = float(now)

    def __call__(self) -> float:
        return self.now


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return bool(predicate())


def make_sine(freq: float, sample_rate: int, num_samples: int, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(int(num_samples), dtype=np.float64) / float(sample_rate)
    return (amplitude * np.sin(2.0 * np.pi * float(freq) * t)).astype(np.float32)


def peak_frequency(audio: np.ndarray, sample_rate: int) -> float:
    spectrum = np.abs(np.fft.rfft(audio.astype(np.float64)))
    freqs = np.fft.rfftfreq(audio.size, d=1.0 / float(sample_rate))
    return float(freqs[int(np.argmax(spectrum))])


@pytest.fixture
def fake_capture() -> FakeCapture:
    return FakeCapture()


@pytest.fixture
def list_sink() -> ListSink:
    return ListSink()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
