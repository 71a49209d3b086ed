from __future__ import annotations

import logging
from typing import Callable, Optional

import numpy as np

from repitch.config import AppConfig
from repitch.dsp import resample_audio
from repitch.session import ChunkSession, SessionParameters
from repitch.types import ChunkResult

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def iter_frames(audio: np.ndarray, block_size: int):
    audio = audio.astype(np.float32, copy=False).reshape(-1)
    if int(block_size) <= 0:
        raise ValueError("block_size must be > 0")
    for start in range(0, int(audio.size), int(block_size)):
        yield audio[start : start + int(block_size)]


def ensure_min_rate(audio: np.ndarray, sample_rate: int, target_rate: int) -> tuple[np.ndarray, int]:
    """Upsample input recorded below ``target_rate`` so it can be decimated to it."""
    if int(sample_rate) >= int(target_rate):
        return audio, int(sample_rate)
    logger.info("Upsampling input from %d Hz to %d Hz", int(sample_rate), int(target_rate))
    return resample_audio(audio, orig_sr=int(sample_rate), target_sr=int(target_rate)), int(target_rate)


def record_offline(
    audio: np.ndarray,
    sample_rate: int,
    config: AppConfig,
    *,
    parameters: Optional[SessionParameters] = None,
    progress: Optional[ProgressCallback] = None,
) -> list[ChunkResult]:
    """Run a recorded buffer through the same chunking as a live session.

    Frames of ``capture.block_size`` samples are pushed in order, and a
    rotation fires whenever the sample clock crosses a multiple of
    ``rotation_sec``.
    """
    params = (
        parameters
        if parameters is not None
        else SessionParameters(pitch_ratio=config.pitch, speed=config.speed)
    )
    session = ChunkSession(
        params,
        target_rate=config.processing.target_rate,
        grain_size=config.processing.grain_size,
        grain_hop=config.processing.grain_hop,
        workers=config.processing.workers,
    )
    session.begin(int(sample_rate))

    rotation_samples = int(round(float(config.rotation_sec) * float(sample_rate)))
    if rotation_samples <= 0:
        raise ValueError("rotation_sec is too small (<= 0 samples)")

    audio = audio.astype(np.float32, copy=False).reshape(-1)
    total = int(audio.size)
    next_tick = rotation_samples
    clock = 0
    for frame in iter_frames(audio, config.capture.block_size):
        session.push(frame)
        clock += int(frame.size)
        while clock >= next_tick:
            session.rotate()
            next_tick += rotation_samples
        if progress is not None:
            progress(clock, total)

    results = session.finish()
    logger.info("Offline session: %d sample(s) -> %d chunk(s)", total, len(results))
    return results
