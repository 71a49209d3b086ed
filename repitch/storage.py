from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence

from repitch.types import ChunkResult

logger = logging.getLogger(__name__)


class ChunkSink(Protocol):
    def deliver(self, results: Sequence[ChunkResult]) -> None: ...


def _dt_slug() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%SZ")


def default_session_stem(*, prefix: str = "session") -> str:
    return f"{prefix}_{_dt_slug()}"


def ensure_output_dir(*, base_dir: Optional[Path], output_dir: str) -> Path:
    root = Path(base_dir) if base_dir is not None else Path.cwd()
    out = (root / output_dir).resolve()
    out.mkdir(parents=True, exist_ok=True)
    return out


def result_to_dict(result: ChunkResult, *, file: Optional[str] = None) -> dict[str, Any]:
    return {
        "index": int(result.index),
        "file": file,
        "sample_rate": int(result.sample_rate),
        "num_samples": 0 if result.pcm16 is None else int(result.pcm16.size),
        "num_input_samples": int(result.num_input_samples),
        "duration_sec": round(float(result.duration_sec), 4),
        "original_speed": float(result.original_speed),
        "original_pitch": float(result.original_pitch),
        "error": result.error,
    }


def results_to_dict(
    results: Sequence[ChunkResult], *, files: Optional[Sequence[Optional[str]]] = None
) -> dict[str, Any]:
    names = list(files) if files is not None else [None] * len(results)
    return {
        "created_at": datetime.now(timezone.utc).isoformat(),
        "chunks": [result_to_dict(r, file=f) for r, f in zip(results, names)],
    }


class WavDirectorySink:
    """Writes each processed chunk as a 16-bit WAV plus one JSON manifest per session."""

    def __init__(self, output_dir: Path, *, prefix: str = "session", write_manifest: bool = True) -> None:
        self._output_dir = Path(output_dir)
        self._prefix = str(prefix)
        self._write_manifest = bool(write_manifest)
        self._sessions: list[str] = []

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    @property
    def sessions(self) -> list[str]:
        return list(self._sessions)

    def _unique_stem(self) -> str:
        base = default_session_stem(prefix=self._prefix)
        stem = base
        n = 1
        while stem in self._sessions or (self._output_dir / f"{stem}.json").exists():
            stem = f"{base}_{n}"
            n += 1
        return stem

    def deliver(self, results: Sequence[ChunkResult]) -> None:
        import soundfile as sf  # type: ignore

        self._output_dir.mkdir(parents=True, exist_ok=True)
        stem = self._unique_stem()

        files: list[Optional[str]] = []
        for result in results:
            if not result.ok:
                files.append(None)
                continue
            file_name = f"{stem}_chunk{int(result.index):03d}.wav"
            sf.write(
                str(self._output_dir / file_name),
                result.pcm16,
                int(result.sample_rate),
                subtype="PCM_16",
            )
            files.append(file_name)

        if self._write_manifest:
            payload = results_to_dict(results, files=files)
            manifest_path = self._output_dir / f"{stem}.json"
            manifest_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")

        self._sessions.append(stem)
        logger.info("Stored %d chunk(s) as %s in %s", sum(1 for f in files if f), stem, self._output_dir)
