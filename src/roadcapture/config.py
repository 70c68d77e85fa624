from __future__ import annotations

import json
import math
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any


class ConfigValidationError(ValueError):
    pass


@dataclass(frozen=True)
class GeneratorConfig:
    # Capture grid + lens.
    width: int = 960
    height: int = 540
    fov_deg: float = 10.0
    aspect: float = 960.0 / 540.0
    far_clip: float = 200.0

    # Mask extraction.
    min_extent_px: int = 30
    detect_tag: str = "CubeTag"

    # Camera placement along roads.
    road_tag: str = "Road"
    camera_height: float = 6.0
    min_spacing: float = 30.0
    max_spacing: float = 50.0
    end_margin: float = 50.0
    center_yaw_jitter_deg: int = 10
    side_yaw_jitter_deg: int = 3
    side_offset_fraction: float = 0.25

    # Road decoration (poles + prefabs).
    decorate: bool = False
    min_decoration_spacing: float = 8.0
    max_decoration_spacing: float = 15.0
    decoration_offset_fraction: float = 1.0 / 3.0
    prefab_lift: float = 2.5

    seed: int = 0
    workers: int = 1


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigValidationError(msg)


def _is_number(raw: Any) -> bool:
    return isinstance(raw, (int, float)) and not isinstance(raw, bool)


def load_config(path: Path) -> GeneratorConfig:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return parse_config(data)


def parse_config(data: dict[str, Any]) -> GeneratorConfig:
    _require(isinstance(data, dict), "config must be a JSON object")
    schema_version = data.get("schema_version", "roadcapture.config.v0")
    _require(schema_version == "roadcapture.config.v0", "schema_version must be roadcapture.config.v0")

    known = {f.name: f for f in fields(GeneratorConfig)}
    values: dict[str, Any] = {}
    for key, raw in data.items():
        if key == "schema_version":
            continue
        _require(key in known, f"unknown config key: {key}")
        default = known[key].default
        # Checked against the type of the default value (bool before int: bool is an int subclass).
        if isinstance(default, bool):
            _require(isinstance(raw, bool), f"{key} must be a boolean")
            values[key] = raw
        elif isinstance(default, int):
            _require(_is_number(raw) and float(raw).is_integer(), f"{key} must be an integer, got {raw!r}")
            values[key] = int(raw)
        elif isinstance(default, float):
            _require(_is_number(raw) and math.isfinite(float(raw)), f"{key} must be a finite number, got {raw!r}")
            values[key] = float(raw)
        else:
            _require(isinstance(raw, str), f"{key} must be a string, got {raw!r}")
            values[key] = raw

    cfg = GeneratorConfig(**values)
    validate_config(cfg)
    return cfg


def validate_config(cfg: GeneratorConfig) -> None:
    _require(cfg.width > 0 and cfg.height > 0, "width and height must be > 0")
    _require(0.0 < cfg.fov_deg < 180.0, "fov_deg must be in (0, 180)")
    _require(cfg.aspect > 0.0, "aspect must be > 0")
    _require(cfg.far_clip > 0.0, "far_clip must be > 0")
    _require(cfg.min_extent_px >= 0, "min_extent_px must be >= 0")
    _require(bool(cfg.detect_tag), "detect_tag must be non-empty")
    _require(0.0 < cfg.min_spacing <= cfg.max_spacing, "spacing must satisfy 0 < min_spacing <= max_spacing")
    _require(
        0.0 < cfg.min_decoration_spacing <= cfg.max_decoration_spacing,
        "decoration spacing must satisfy 0 < min <= max",
    )
    _require(cfg.center_yaw_jitter_deg >= 0 and cfg.side_yaw_jitter_deg >= 0, "yaw jitter must be >= 0")
    _require(cfg.workers >= 1, "workers must be >= 1")
