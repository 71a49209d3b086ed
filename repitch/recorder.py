from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable, Optional, Union

from repitch.audio.frame import AudioFrame, CaptureFailure, CaptureSource
from repitch.config import AppConfig
from repitch.errors import CaptureUnavailable, SessionStateError
from repitch.session import ChunkSession, SessionParameters
from repitch.storage import ChunkSink
from repitch.types import ChunkResult, SessionState

logger = logging.getLogger(__name__)

FailureCallback = Callable[[str], None]


class ChunkRecorder:
    """Live controller: one worker thread owns the session.

    Frames from the capture queue, rotation ticks and the stop request are
    handled one at a time by that worker, so a rotation never overlaps another
    rotation or a frame append.
    """

    def __init__(
        self,
        config: AppConfig,
        capture: CaptureSource,
        sink: Optional[ChunkSink] = None,
        *,
        parameters: Optional[SessionParameters] = None,
        clock: Callable[[], float] = time.monotonic,
        on_failure: Optional[FailureCallback] = None,
        poll_sec: float = 0.05,
    ) -> None:
        self._config = config
        self._capture = capture
        self._sink = sink
        self._clock = clock
        self._on_failure = on_failure
        self._poll_sec = float(poll_sec)
        self._rotation_sec = float(config.rotation_sec)
        if self._rotation_sec <= 0:
            raise ValueError("rotation_sec must be > 0")

        self._parameters = (
            parameters
            if parameters is not None
            else SessionParameters(pitch_ratio=config.pitch, speed=config.speed)
        )
        self._session = ChunkSession(
            self._parameters,
            target_rate=config.processing.target_rate,
            grain_size=config.processing.grain_size,
            grain_hop=config.processing.grain_hop,
            workers=config.processing.workers,
        )

        self._stop_requested = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self._failure: Optional[str] = None
        self._worker_error: Optional[BaseException] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._worker is not None

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def sample_rate(self) -> int:
        return self._session.sample_rate

    @property
    def chunk_count(self) -> int:
        return len(self._session.chunks)

    @property
    def failure(self) -> Optional[str]:
        return self._failure

    @property
    def parameters(self) -> SessionParameters:
        return self._parameters

    def set_speed(self, value: Union[float, str]) -> None:
        self._parameters.set_speed(value)
        logger.info("Speed set to %s (applies from the next chunk)", self._parameters.speed_text())

    def set_pitch(self, value: Union[float, str]) -> None:
        self._parameters.set_pitch(value)
        logger.info("Pitch set to %s (applies from the next chunk)", self._parameters.pitch_text())

    def get_speed(self) -> str:
        return self._parameters.speed_text()

    def get_pitch(self) -> str:
        return self._parameters.pitch_text()

    def start(self) -> int:
        with self._lock:
            if self._worker is not None:
                raise SessionStateError("Recorder is already running")

            capture_cfg = self._config.capture
            try:
                sample_rate = int(
                    self._capture.start(
                        preferred_sample_rate=int(capture_cfg.preferred_sample_rate),
                        block_size=int(capture_cfg.block_size),
                    )
                )
            except CaptureUnavailable:
                raise
            except Exception as exc:
                raise CaptureUnavailable(str(exc)) from exc

            self._failure = None
            self._worker_error = None
            self._stop_requested.clear()
            self._session.begin(sample_rate)

            self._worker = threading.Thread(target=self._run, name="repitch-session", daemon=True)
            self._worker.start()
            return sample_rate

    def stop(self) -> list[ChunkResult]:
        with self._lock:
            worker = self._worker
            if worker is None:
                raise SessionStateError("Recorder is not running")

            self._stop_requested.set()
            worker.join()
            self._worker = None

            if self._worker_error is not None:
                logger.error("Session worker crashed: %s", self._worker_error)

            results = self._session.finish()
            logger.info(
                "Session finished: %d chunk(s), %d sample(s) captured",
                len(results),
                self._session.total_closed_samples,
            )
            if self._sink is not None:
                self._sink.deliver(results)
            return results

    def _handle(self, item: Union[AudioFrame, CaptureFailure]) -> bool:
        if isinstance(item, CaptureFailure):
            self._failure = str(item.message)
            logger.error("Capture failed: %s", self._failure)
            if self._on_failure is not None:
                self._on_failure(self._failure)
            return False
        self._session.push(item.samples)
        return True

    def _drain(self) -> None:
        q = self._capture.queue
        while True:
            try:
                item = q.get_nowait()
            except queue.Empty:
                return
            if isinstance(item, AudioFrame):
                self._session.push(item.samples)

    def _run(self) -> None:
        q = self._capture.queue
        deadline = self._clock() + self._rotation_sec
        try:
            while not self._stop_requested.is_set():
                timeout = max(0.0, min(self._poll_sec, deadline - self._clock()))
                try:
                    item = q.get(timeout=timeout)
                except queue.Empty:
                    item = None

                if item is not None and not self._handle(item):
                    break

                now = self._clock()
                if now >= deadline:
                    chunk = self._session.rotate()
                    if chunk is not None:
                        logger.info("Rotated chunk %d (%d samples)", chunk.index, chunk.length)
                    deadline += self._rotation_sec
                    if deadline <= now:
                        deadline = now + self._rotation_sec
        except Exception as exc:
            self._worker_error = exc
            logger.exception("Session worker stopped on error")
        finally:
            self._capture.stop()
            self._drain()
