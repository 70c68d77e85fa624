from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any


class CaptureValidationError(ValueError):
    pass


@dataclass(frozen=True)
class CaptureRequest:
    """
    One camera to capture: lens parameters + pose.

    Convention: Y up, Z forward, X right. `rotation_deg` is (pitch, yaw, roll) in degrees,
    composed as R = Ry(yaw) @ Rx(pitch) @ Rz(roll).
    """

    width: int
    height: int
    fov_deg: float
    aspect: float
    far_clip: float
    position: tuple[float, float, float]
    rotation_deg: tuple[float, float, float] = (0.0, 0.0, 0.0)


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise CaptureValidationError(msg)


def _is_number(raw: Any) -> bool:
    return isinstance(raw, (int, float)) and not isinstance(raw, bool)


def _int(raw: Any, name: str) -> int:
    _require(_is_number(raw) and float(raw).is_integer(), f"{name} must be an integer, got {raw!r}")
    return int(raw)


def _float(raw: Any, name: str) -> float:
    _require(_is_number(raw) and math.isfinite(float(raw)), f"{name} must be a finite number, got {raw!r}")
    return float(raw)


def _vec3(raw: Any, name: str) -> tuple[float, float, float]:
    _require(isinstance(raw, (list, tuple)) and len(raw) == 3, f"{name} must be [x,y,z]")
    x, y, z = (_float(c, name) for c in raw)
    return (x, y, z)


def load_capture_requests(path: Path) -> list[CaptureRequest]:
    """Reads one request per line (JSON Lines)."""
    lines = Path(path).read_text(encoding="utf-8").splitlines()
    return [parse_capture_request(json.loads(line)) for line in lines if line.strip()]


def parse_capture_request(data: dict[str, Any]) -> CaptureRequest:
    w_raw = data.get("width")
    h_raw = data.get("height")
    _require(w_raw is not None and h_raw is not None, "width and height are required")
    w = _int(w_raw, "width")
    h = _int(h_raw, "height")
    _require(w > 0 and h > 0, "width and height must be > 0")

    fov = _float(data.get("fov_deg", 0.0), "fov_deg")
    _require(0.0 < fov < 180.0, "fov_deg must be in (0, 180)")

    aspect = _float(data.get("aspect", w / h), "aspect")
    _require(aspect > 0.0, "aspect must be > 0")

    far = _float(data.get("far_clip", 0.0), "far_clip")
    _require(far > 0.0, "far_clip must be > 0")

    _require("position" in data, "position is required")
    position = _vec3(data["position"], "position")
    rotation = _vec3(data.get("rotation_deg", [0.0, 0.0, 0.0]), "rotation_deg")

    return CaptureRequest(
        width=w,
        height=h,
        fov_deg=fov,
        aspect=aspect,
        far_clip=far,
        position=position,
        rotation_deg=rotation,
    )


def capture_request_to_dict(req: CaptureRequest) -> dict[str, Any]:
    return {
        "width": int(req.width),
        "height": int(req.height),
        "fov_deg": float(req.fov_deg),
        "aspect": float(req.aspect),
        "far_clip": float(req.far_clip),
        "position": [float(c) for c in req.position],
        "rotation_deg": [float(c) for c in req.rotation_deg],
    }
