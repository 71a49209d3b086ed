from __future__ import annotations

import pytest

from conftest import FakeCapture, FakeClock, ListSink, wait_until
from repitch.config import AppConfig
from repitch.errors import CaptureUnavailable, SessionStateError
from repitch.recorder import ChunkRecorder
from repitch.types import SessionState


def _recorder(capture: FakeCapture, sink: ListSink, clock: FakeClock, **kwargs) -> ChunkRecorder:
    return ChunkRecorder(AppConfig(), capture, sink, clock=clock, poll_sec=0.005, **kwargs)


def _tick(recorder: ChunkRecorder, capture: FakeCapture, clock: FakeClock, now: float, expected: int) -> None:
    assert wait_until(lambda: capture.queue.empty())
    clock.now = now
    assert wait_until(lambda: recorder.chunk_count == expected)


def test_start_failure_keeps_session_idle(list_sink: ListSink, fake_clock: FakeClock) -> None:
    capture = FakeCapture(error=PermissionError("microphone permission denied"))
    recorder = _recorder(capture, list_sink, fake_clock)
    with pytest.raises(CaptureUnavailable, match="permission denied"):
        recorder.start()
    assert recorder.state == SessionState.IDLE
    assert not recorder.running
    with pytest.raises(SessionStateError):
        recorder.stop()


def test_end_to_end_stop_between_ticks(
    fake_capture: FakeCapture, list_sink: ListSink, fake_clock: FakeClock
) -> None:
    recorder = _recorder(fake_capture, list_sink, fake_clock)
    assert recorder.start() == 48000
    assert fake_capture.block_size == 2048
    assert recorder.state == SessionState.CAPTURING

    fake_capture.push()
    fake_capture.push()
    _tick(recorder, fake_capture, fake_clock, 6.0, expected=1)

    fake_clock.now = 6.5
    fake_capture.push()
    assert wait_until(lambda: fake_capture.queue.empty())
    results = recorder.stop()

    assert len(results) == 2
    assert [r.num_input_samples for r in results] == [4096, 2048]
    assert all(r.ok and r.sample_rate == 16000 for r in results)
    assert fake_capture.stop_calls == 1
    assert list_sink.delivered == [results]
    assert recorder.state == SessionState.IDLE
    assert not recorder.running


def test_frames_queued_before_stop_are_kept(
    fake_capture: FakeCapture, list_sink: ListSink, fake_clock: FakeClock
) -> None:
    recorder = _recorder(fake_capture, list_sink, fake_clock)
    recorder.start()
    for _ in range(3):
        fake_capture.push()
    results = recorder.stop()
    assert sum(r.num_input_samples for r in results) == 3 * 2048


def test_parameters_apply_to_next_closed_chunk(
    fake_capture: FakeCapture, list_sink: ListSink, fake_clock: FakeClock
) -> None:
    recorder = _recorder(fake_capture, list_sink, fake_clock)
    recorder.start()

    fake_capture.push()
    recorder.set_pitch(1.5)
    recorder.set_speed("2")
    _tick(recorder, fake_capture, fake_clock, 6.0, expected=1)

    recorder.set_pitch(0.5)
    fake_capture.push()
    _tick(recorder, fake_capture, fake_clock, 12.0, expected=2)

    assert recorder.get_pitch() == "0.5"
    assert recorder.get_speed() == "2.0"
    results = recorder.stop()
    assert [(r.original_pitch, r.original_speed) for r in results] == [(1.5, 2.0), (0.5, 2.0)]


def test_capture_failure_is_terminal_but_keeps_audio(
    fake_capture: FakeCapture, list_sink: ListSink, fake_clock: FakeClock
) -> None:
    failures: list[str] = []
    recorder = _recorder(fake_capture, list_sink, fake_clock, on_failure=failures.append)
    recorder.start()

    fake_capture.push()
    fake_capture.fail("device unplugged")
    assert wait_until(lambda: recorder.failure is not None)
    assert failures == ["device unplugged"]
    assert wait_until(lambda: fake_capture.stop_calls == 1)

    results = recorder.stop()
    assert [r.num_input_samples for r in results] == [2048]


def test_double_start_is_rejected(
    fake_capture: FakeCapture, list_sink: ListSink, fake_clock: FakeClock
) -> None:
    recorder = _recorder(fake_capture, list_sink, fake_clock)
    recorder.start()
    try:
        with pytest.raises(SessionStateError):
            recorder.start()
    finally:
        recorder.stop()

    # A stopped recorder can run another session.
    recorder.start()
    fake_capture.push()
    assert len(recorder.stop()) == 1
    assert len(list_sink.delivered) == 2
