from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

from repitch.dsp import change_speed, downsample, float_to_pcm16, shift_pitch
from repitch.errors import InvalidRateError, LengthMismatchError
from repitch.types import Chunk, ChunkResult

logger = logging.getLogger(__name__)


def process_chunk(
    chunk: Chunk,
    *,
    sample_rate: int,
    target_rate: int = 16000,
    grain_size: Optional[int] = None,
    grain_hop: Optional[int] = None,
) -> ChunkResult:
    """Pitch shift -> speed change -> downsample -> quantize, in that order."""
    shifted = shift_pitch(chunk.samples, chunk.pitch_ratio, grain_size=grain_size, hop=grain_hop)
    respeeded = change_speed(shifted, chunk.speed)
    processed = downsample(respeeded, sample_rate=int(sample_rate), rate=int(target_rate))
    pcm = float_to_pcm16(processed)

    chunk.processed_audio = processed
    chunk.pcm16 = pcm

    return ChunkResult(
        index=int(chunk.index),
        pcm16=pcm,
        sample_rate=int(target_rate),
        original_speed=float(chunk.speed),
        original_pitch=float(chunk.pitch_ratio),
        num_input_samples=int(chunk.length),
    )


def _process_isolated(
    chunk: Chunk,
    *,
    sample_rate: int,
    target_rate: int,
    grain_size: Optional[int],
    grain_hop: Optional[int],
) -> ChunkResult:
    try:
        return process_chunk(
            chunk,
            sample_rate=sample_rate,
            target_rate=target_rate,
            grain_size=grain_size,
            grain_hop=grain_hop,
        )
    except (InvalidRateError, LengthMismatchError, ValueError) as exc:
        logger.error("Chunk %d failed: %s", chunk.index, exc)
        return ChunkResult(
            index=int(chunk.index),
            pcm16=None,
            sample_rate=int(target_rate),
            original_speed=float(chunk.speed),
            original_pitch=float(chunk.pitch_ratio),
            num_input_samples=int(chunk.length),
            error=str(exc),
        )


def process_chunks(
    chunks: Sequence[Chunk],
    *,
    sample_rate: int,
    target_rate: int = 16000,
    grain_size: Optional[int] = None,
    grain_hop: Optional[int] = None,
    workers: int = 1,
) -> list[ChunkResult]:
    def run(chunk: Chunk) -> ChunkResult:
        return _process_isolated(
            chunk,
            sample_rate=sample_rate,
            target_rate=target_rate,
            grain_size=grain_size,
            grain_hop=grain_hop,
        )

    if int(workers) <= 1 or len(chunks) <= 1:
        results = [run(c) for c in chunks]
    else:
        with ThreadPoolExecutor(max_workers=int(workers)) as pool:
            # map() keeps capture order
            results = list(pool.map(run, chunks))

    failed = sum(1 for r in results if not r.ok)
    logger.info("Processed %d chunk(s), %d failed", len(results), failed)
    return results
