from __future__ import annotations

import logging
import queue
from typing import Optional

import numpy as np

from repitch.audio.frame import AudioFrame, CaptureFailure, CaptureItem
from repitch.errors import CaptureUnavailable

logger = logging.getLogger(__name__)


class MicCapture:
    def __init__(self, device: Optional[int] = None, *, queue_size: int = 0) -> None:
        self._device = device
        self._stream = None
        self._queue: "queue.Queue[CaptureItem]" = queue.Queue(maxsize=max(0, int(queue_size)))
        self._running = False
        self._dropped = 0

    @property
    def queue(self) -> "queue.Queue[CaptureItem]":
        return self._queue

    @property
    def dropped_frames(self) -> int:
        return int(self._dropped)

    def start(self, preferred_sample_rate: int, block_size: int = 2048) -> int:
        try:
            import sounddevice as sd  # type: ignore
        except Exception as exc:  # pragma: no cover
            raise CaptureUnavailable("sounddevice is required for microphone capture") from exc

        if self._running:
            return int(preferred_sample_rate)

        self._queue.queue.clear()  # type: ignore[attr-defined]
        self._dropped = 0
        self._running = True

        def callback(indata: np.ndarray, frames: int, time, status) -> None:  # noqa: ANN001
            if not self._running:
                return
            if status:
                logger.warning("Input stream status: %s", status)
            mono = indata[:, 0].astype(np.float32, copy=True)
            try:
                self._queue.put_nowait(AudioFrame(samples=mono, sample_rate=int(stream_sr)))
            except queue.Full:
                self._dropped += 1
                logger.warning("Capture queue full, dropped frame (%d so far)", self._dropped)

        def finished() -> None:
            if not self._running:
                return
            # Stream ended without stop(): the device went away.
            self._running = False
            try:
                self._queue.put_nowait(CaptureFailure("Input stream ended unexpectedly"))
            except queue.Full:
                logger.error("Input stream ended unexpectedly and the capture queue is full")

        # Prefer configured SR, but fall back to the device default if unsupported.
        stream_sr = int(preferred_sample_rate)
        try:
            dev_info = sd.query_devices(self._device, "input")
            default_sr = int(dev_info.get("default_samplerate", stream_sr))
        except Exception as exc:
            logger.debug("Could not query input device %s: %s", self._device, exc)
            default_sr = stream_sr

        last_error: Optional[Exception] = None
        for sr in (stream_sr, default_sr):
            try:
                self._stream = sd.InputStream(
                    samplerate=sr,
                    device=self._device,
                    channels=1,
                    dtype="float32",
                    blocksize=int(block_size),
                    callback=callback,
                    finished_callback=finished,
                )
                self._stream.start()
                stream_sr = int(sr)
                break
            except Exception as exc:
                logger.debug("Opening input stream at %d Hz failed: %s", sr, exc)
                last_error = exc
                stream, self._stream = self._stream, None
                if stream is not None:
                    try:
                        stream.close()
                    except Exception as close_exc:
                        logger.debug("Closing failed input stream raised: %s", close_exc)
                continue

        if self._stream is None:
            self._running = False
            raise CaptureUnavailable(f"Failed to start microphone capture: {last_error}") from last_error

        logger.info("Microphone capture started at %d Hz (block %d)", stream_sr, int(block_size))
        return int(stream_sr)

    def stop(self) -> None:
        self._running = False
        if self._stream is not None:
            try:
                self._stream.stop()
            finally:
                self._stream.close()
                self._stream = None
            logger.info("Microphone released")
