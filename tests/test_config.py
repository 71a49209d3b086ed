from __future__ import annotations

from pathlib import Path

import pytest

from repitch.config import AppConfig, load_config


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    cfg = load_config(tmp_path / "nope.yaml")
    assert cfg == AppConfig()
    assert cfg.rotation_sec == 6.0
    assert cfg.capture.block_size == 2048
    assert cfg.processing.target_rate == 16000
    assert cfg.processing.grain_size is None


def test_overrides_and_null_fallbacks(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "\n".join(
            [
                "rotation_sec: 3",
                "pitch: 1.5",
                "speed: null",
                "log_level: debug",
                "capture:",
                "  device: 2",
                "  preferred_sample_rate: 44100",
                "processing:",
                "  grain_size: 2048",
                "  grain_hop: 0",
                "  workers: 4",
                "storage:",
                "  output_dir: out",
                "  write_manifest: false",
            ]
        ),
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg.rotation_sec == 3.0
    assert cfg.pitch == 1.5
    assert cfg.speed == 1.0
    assert cfg.log_level == "DEBUG"
    assert cfg.capture.device == 2
    assert cfg.capture.preferred_sample_rate == 44100
    assert cfg.capture.block_size == 2048
    assert cfg.processing.grain_size == 2048
    assert cfg.processing.grain_hop is None
    assert cfg.processing.workers == 4
    assert cfg.storage.output_dir == "out"
    assert cfg.storage.prefix == "session"
    assert cfg.storage.write_manifest is False


def test_non_mapping_yaml_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    assert load_config(path) == AppConfig()


def test_shipped_config_matches_defaults() -> None:
    shipped = Path(__file__).resolve().parents[1] / "config.yaml"
    assert load_config(shipped) == AppConfig()


def test_grain_hop_must_fit_in_grain(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("processing:\n  grain_size: 256\n  grain_hop: 512\n", encoding="utf-8")
    with pytest.raises(ValueError, match="grain_hop"):
        load_config(path)

    path.write_text("processing:\n  grain_hop: 512\n", encoding="utf-8")
    with pytest.raises(ValueError, match="grain_hop"):
        load_config(path)

    path.write_text("processing:\n  grain_size: 512\n  grain_hop: 512\n", encoding="utf-8")
    cfg = load_config(path)
    assert cfg.processing.grain_hop == cfg.processing.grain_size == 512
