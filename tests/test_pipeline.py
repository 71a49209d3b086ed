from __future__ import annotations

import numpy as np

from conftest import make_sine
from repitch.dsp import float_to_pcm16, hann_window, pcm16_to_float
from repitch.pipeline import process_chunk, process_chunks
from repitch.types import Chunk


def _chunk(index: int, samples: np.ndarray, *, pitch: float = 1.0, speed: float = 1.0) -> Chunk:
    return Chunk(index=index, samples=samples, length=int(samples.size), pitch_ratio=pitch, speed=speed)


def test_unity_parameters_preserve_duration_and_shape() -> None:
    x = make_sine(250.0, 16000, 16000, amplitude=0.5)
    result = process_chunk(_chunk(0, x), sample_rate=16000, target_rate=16000)

    assert result.ok
    assert result.pcm16 is not None
    assert result.pcm16.size == x.size
    w = hann_window(x.size)
    np.testing.assert_allclose(pcm16_to_float(result.pcm16), x * w * w, atol=1e-4)
    # Window is ~1 in the middle, so the signal itself survives there.
    mid = slice(7900, 8100)
    np.testing.assert_allclose(pcm16_to_float(result.pcm16)[mid], x[mid], atol=2e-3)


def test_stages_fill_chunk_and_record() -> None:
    x = make_sine(440.0, 48000, 48000)
    chunk = _chunk(3, x, pitch=1.5, speed=2.0)
    result = process_chunk(chunk, sample_rate=48000, target_rate=16000)

    assert result.index == 3
    assert result.sample_rate == 16000
    assert result.original_pitch == 1.5
    assert result.original_speed == 2.0
    assert result.num_input_samples == 48000
    assert result.pcm16.size == 8000
    assert chunk.processed_audio is not None and chunk.processed_audio.size == 8000
    np.testing.assert_array_equal(chunk.pcm16, float_to_pcm16(chunk.processed_audio))


def test_failing_chunk_is_isolated() -> None:
    x = make_sine(440.0, 32000, 3200)
    chunks = [_chunk(0, x), _chunk(1, x, pitch=0.0), _chunk(2, x, speed=0.5)]
    for workers in (1, 3):
        results = process_chunks(chunks, sample_rate=32000, target_rate=16000, workers=workers)
        assert [r.index for r in results] == [0, 1, 2]
        assert results[0].ok and results[2].ok
        assert not results[1].ok
        assert results[1].pcm16 is None
        assert "Pitch ratio" in str(results[1].error)
        assert results[2].pcm16.size == 3200


def test_invalid_rate_reported_per_chunk() -> None:
    x = make_sine(440.0, 8000, 800)
    results = process_chunks([_chunk(0, x), _chunk(1, x)], sample_rate=8000, target_rate=16000)
    assert len(results) == 2
    assert all(not r.ok for r in results)
    assert all("must not exceed" in str(r.error) for r in results)
