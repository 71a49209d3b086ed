from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional


@dataclass(frozen=True)
class CaptureConfig:
    device: Optional[int] = None
    preferred_sample_rate: int = 48000
    block_size: int = 2048
    queue_size: int = 0  # 0 = unbounded


@dataclass(frozen=True)
class ProcessingConfig:
    target_rate: int = 16000
    grain_size: Optional[int] = None  # None = whole chunk is a single grain
    grain_hop: Optional[int] = None  # None = grain_size
    workers: int = 1


@dataclass(frozen=True)
class StorageConfig:
    output_dir: str = "recordings"
    prefix: str = "session"
    write_manifest: bool = True


@dataclass(frozen=True)
class AppConfig:
    rotation_sec: float = 6.0
    pitch: float = 1.0
    speed: float = 1.0
    log_level: str = "INFO"
    capture: CaptureConfig = CaptureConfig()
    processing: ProcessingConfig = ProcessingConfig()
    storage: StorageConfig = StorageConfig()


def _get(d: dict[str, Any], key: str, default: Any) -> Any:
    value = d.get(key, default)
    return default if value is None else value


def _optional_int(d: dict[str, Any], key: str) -> Optional[int]:
    value = d.get(key)
    if value is None or int(value) <= 0:
        return None
    return int(value)


def load_config(path: Path) -> AppConfig:
    path = Path(path)
    if not path.exists():
        return AppConfig()

    try:
        import yaml  # type: ignore
    except Exception as exc:  # pragma: no cover
        raise RuntimeError("PyYAML is required to read config.yaml") from exc

    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        return AppConfig()

    capture_raw = raw.get("capture", {}) or {}
    processing_raw = raw.get("processing", {}) or {}
    storage_raw = raw.get("storage", {}) or {}

    device = capture_raw.get("device")
    grain_size = _optional_int(processing_raw, "grain_size")
    grain_hop = _optional_int(processing_raw, "grain_hop")
    if grain_hop is not None and (grain_size is None or grain_hop > grain_size):
        raise ValueError("processing.grain_hop requires processing.grain_size and must not exceed it")

    return AppConfig(
        rotation_sec=float(_get(raw, "rotation_sec", 6.0)),
        pitch=float(_get(raw, "pitch", 1.0)),
        speed=float(_get(raw, "speed", 1.0)),
        log_level=str(_get(raw, "log_level", "INFO")).upper(),
        capture=CaptureConfig(
            device=None if device is None else int(device),
            preferred_sample_rate=int(_get(capture_raw, "preferred_sample_rate", 48000)),
            block_size=int(_get(capture_raw, "block_size", 2048)),
            queue_size=int(_get(capture_raw, "queue_size", 0)),
        ),
        processing=ProcessingConfig(
            target_rate=int(_get(processing_raw, "target_rate", 16000)),
            grain_size=grain_size,
            grain_hop=grain_hop,
            workers=max(1, int(_get(processing_raw, "workers", 1))),
        ),
        storage=StorageConfig(
            output_dir=str(_get(storage_raw, "output_dir", "recordings")),
            prefix=str(_get(storage_raw, "prefix", "session")),
            write_manifest=bool(_get(storage_raw, "write_manifest", True)),
        ),
    )
