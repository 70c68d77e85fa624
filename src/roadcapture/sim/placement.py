from __future__ import annotations

import logging

import numpy as np

from roadcapture.config import GeneratorConfig
from roadcapture.core.scene import Scene, SceneObject
from roadcapture.meta import CaptureRequest

logger = logging.getLogger(__name__)


def road_extent(road: SceneObject) -> tuple[np.ndarray, np.ndarray] | None:
    """(min, max) of a road's bounds, or None when it has no usable footprint."""
    bounds = road.bounds
    if bounds is None:
        return None
    lo = np.asarray(bounds[0], dtype=np.float64)
    hi = np.asarray(bounds[1], dtype=np.float64)
    if not (np.all(np.isfinite(lo)) and np.all(np.isfinite(hi))):
        return None
    size = hi - lo
    if size[0] <= 0.0 or size[2] <= 0.0:
        return None
    return lo, hi


def _request(cfg: GeneratorConfig, position: np.ndarray, yaw_deg: float) -> CaptureRequest:
    return CaptureRequest(
        width=cfg.width,
        height=cfg.height,
        fov_deg=cfg.fov_deg,
        aspect=cfg.aspect,
        far_clip=cfg.far_clip,
        position=tuple(float(c) for c in position),  # type: ignore[arg-type]
        rotation_deg=(0.0, float(yaw_deg), 0.0),
    )


def _jitter(rng: np.random.Generator, n: int) -> float:
    # Integer degrees in [-n, n).
    if n <= 0:
        return 0.0
    return float(rng.integers(-n, n))


def place_cameras_along_road(
    lo: np.ndarray, hi: np.ndarray, cfg: GeneratorConfig, rng: np.random.Generator
) -> list[CaptureRequest]:
    """
    Center/left/right camera triplets spaced along the long axis of a road's bounds.

    The last end_margin units of the road get no cameras. Left/right cameras sit a quarter of
    the road width to each side and share one small extra yaw offset.
    """
    size = hi - lo
    center = 0.5 * (lo + hi)
    y = lo[1] + cfg.camera_height

    if size[0] < size[2]:
        # Runs along +Z.
        start = np.array([center[0], y, lo[2]])
        end = np.array([center[0], y, hi[2]])
        direction = np.array([0.0, 0.0, 1.0])
        cross = np.array([1.0, 0.0, 0.0])
        base_yaw = 0.0
    else:
        start = np.array([lo[0], y, center[2]])
        end = np.array([hi[0], y, center[2]])
        direction = np.array([1.0, 0.0, 0.0])
        cross = np.array([0.0, 0.0, 1.0])
        base_yaw = 90.0

    side_offset = min(size[0], size[2]) * cfg.side_offset_fraction
    remaining = float(np.linalg.norm(end - start)) - cfg.end_margin
    position = start.copy()

    requests: list[CaptureRequest] = []
    while remaining > 0:
        yaw = base_yaw + _jitter(rng, cfg.center_yaw_jitter_deg)
        side = _jitter(rng, cfg.side_yaw_jitter_deg)

        requests.append(_request(cfg, position, yaw))
        requests.append(_request(cfg, position - cross * side_offset, yaw + side))
        requests.append(_request(cfg, position + cross * side_offset, yaw + side))

        spacing = min(remaining, float(rng.uniform(cfg.min_spacing, cfg.max_spacing)))
        position = position + direction * spacing
        remaining -= spacing

    return requests


def place_cameras_on_roads(scene: Scene, cfg: GeneratorConfig, rng: np.random.Generator) -> list[CaptureRequest]:
    requests: list[CaptureRequest] = []
    for road in scene.find_by_tag(cfg.road_tag):
        extent = road_extent(road)
        if extent is None:
            logger.warning("Skipping road %s (id %d): no measurable extent", road.name, road.object_id)
            continue
        placed = place_cameras_along_road(extent[0], extent[1], cfg, rng)
        logger.info("Placed %d cameras along road %s", len(placed), road.name)
        requests.extend(placed)
    return requests

