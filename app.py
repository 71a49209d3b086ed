from __future__ import annotations

import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import Optional

from repitch.audio.file_reader import load_audio_file
from repitch.audio.mic_capture import MicCapture
from repitch.config import AppConfig, load_config
from repitch.errors import CaptureUnavailable
from repitch.offline import ensure_min_rate, record_offline
from repitch.recorder import ChunkRecorder
from repitch.session import SessionParameters
from repitch.storage import WavDirectorySink, ensure_output_dir
from repitch.types import ChunkResult

logger = logging.getLogger("repitch")


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Record audio in fixed chunks and store pitch/speed-shifted 16 kHz PCM."
    )
    parser.add_argument(
        "--config",
        default=str(Path(__file__).with_name("config.yaml")),
        help="Path to config.yaml (default: next to app.py)",
    )
    parser.add_argument("--input", default="", help="Process an audio file instead of the microphone.")
    parser.add_argument("--duration", type=float, default=0.0, help="Stop recording after N seconds.")
    parser.add_argument("--pitch", type=float, default=None, help="Initial pitch ratio.")
    parser.add_argument("--speed", type=float, default=None, help="Initial speed factor.")
    parser.add_argument("--output-dir", default="", help="Where WAV chunks and manifests are written.")
    parser.add_argument("--log-level", default="", help="DEBUG, INFO, WARNING, ...")
    return parser.parse_args(argv)


def _summarize(results: list[ChunkResult]) -> None:
    for r in results:
        if r.ok:
            print(
                f"chunk {r.index}: {r.duration_sec:.2f}s @ {r.sample_rate} Hz "
                f"(pitch {r.original_pitch:.1f}, speed {r.original_speed:.1f})"
            )
        else:
            print(f"chunk {r.index}: failed: {r.error}")


def _interactive(recorder: ChunkRecorder, duration: float, done: threading.Event) -> None:
    if duration > 0:
        timer = threading.Timer(duration, done.set)
        timer.daemon = True
        timer.start()

    def read_commands() -> None:
        for line in sys.stdin:
            parts = line.strip().split()
            if not parts:
                continue
            cmd = parts[0].lower()
            try:
                if cmd == "pitch" and len(parts) == 2:
                    recorder.set_pitch(parts[1])
                elif cmd == "speed" and len(parts) == 2:
                    recorder.set_speed(parts[1])
                elif cmd == "status":
                    print(
                        f"pitch {recorder.get_pitch()} speed {recorder.get_speed()} "
                        f"chunks {recorder.chunk_count}"
                    )
                elif cmd in {"stop", "quit", "q"}:
                    break
                else:
                    print("commands: pitch X | speed X | status | stop")
            except ValueError as exc:
                print(f"error: {exc}")
        done.set()

    reader = threading.Thread(target=read_commands, name="repitch-stdin", daemon=True)
    reader.start()
    print("Recording. Commands: pitch X | speed X | status | stop")
    try:
        done.wait()
    except KeyboardInterrupt:
        pass


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    config: AppConfig = load_config(Path(args.config))

    logging.basicConfig(
        level=(args.log_level or config.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    params = SessionParameters(
        pitch_ratio=config.pitch if args.pitch is None else args.pitch,
        speed=config.speed if args.speed is None else args.speed,
    )

    if args.output_dir:
        output_dir = ensure_output_dir(base_dir=None, output_dir=args.output_dir)
    else:
        output_dir = ensure_output_dir(base_dir=Path(__file__).resolve().parent, output_dir=config.storage.output_dir)
    sink = WavDirectorySink(
        output_dir,
        prefix=config.storage.prefix,
        write_manifest=config.storage.write_manifest,
    )

    if args.input:
        audio, sr = load_audio_file(Path(args.input))
        audio, sr = ensure_min_rate(audio, sr, config.processing.target_rate)
        results = record_offline(audio, sr, config, parameters=params)
        sink.deliver(results)
        _summarize(results)
        return 0 if all(r.ok for r in results) else 1

    done = threading.Event()

    def on_failure(message: str) -> None:
        print(f"capture failed: {message}")
        done.set()

    capture = MicCapture(device=config.capture.device, queue_size=config.capture.queue_size)
    recorder = ChunkRecorder(
        config,
        capture,
        sink,
        parameters=params,
        on_failure=on_failure,
    )
    try:
        recorder.start()
    except CaptureUnavailable as exc:
        logger.error("Cannot start capture: %s", exc)
        return 2

    try:
        _interactive(recorder, float(args.duration), done)
    finally:
        results = recorder.stop()

    _summarize(results)
    print(f"Saved to {output_dir}")
    return 0 if recorder.failure is None else 1


if __name__ == "__main__":
    raise SystemExit(main())
