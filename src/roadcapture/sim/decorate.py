from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

import numpy as np

from roadcapture.config import GeneratorConfig
from roadcapture.core.scene import Box, Scene, SceneObject, SceneValidationError
from roadcapture.sim.placement import road_extent

logger = logging.getLogger(__name__)

POLE_SIZE = (0.05, 2.0, 0.05)


@dataclass(frozen=True)
class PrefabSpec:
    """A placeable prop; `size` is its footprint for a road running along +Z."""

    name: str
    size: tuple[float, float, float]
    color: tuple[int, int, int] = (200, 60, 40)


DEFAULT_PREFABS = (
    PrefabSpec(name="SpeedSign", size=(1.2, 1.2, 0.1), color=(220, 40, 40)),
    PrefabSpec(name="StopSign", size=(1.0, 1.0, 0.1), color=(200, 20, 20)),
    PrefabSpec(name="InfoBoard", size=(2.0, 1.0, 0.1), color=(40, 90, 200)),
)


def parse_prefabs(raw: list[dict[str, Any]]) -> tuple[PrefabSpec, ...]:
    out: list[PrefabSpec] = []
    for item in raw:
        name = item.get("name")
        size = item.get("size")
        if not isinstance(name, str) or not name:
            raise SceneValidationError("prefab.name is required")
        if not (isinstance(size, (list, tuple)) and len(size) == 3):
            raise SceneValidationError(f"prefab {name}: size must be [x,y,z]")
        sx, sy, sz = (float(s) for s in size)
        if not all(math.isfinite(s) and s > 0.0 for s in (sx, sy, sz)):
            raise SceneValidationError(f"prefab {name}: size must be finite and > 0")
        color = item.get("color", [200, 60, 40])
        out.append(PrefabSpec(name=name, size=(sx, sy, sz), color=tuple(int(c) for c in color)))  # type: ignore[arg-type]
    return tuple(out)


def decoration_positions(
    start: np.ndarray,
    length: float,
    direction: np.ndarray,
    cfg: GeneratorConfig,
    rng: np.random.Generator,
) -> list[np.ndarray]:
    """Centers of successive random-length segments that fit entirely inside `length`."""
    if not 0.0 < cfg.min_decoration_spacing <= cfg.max_decoration_spacing:
        raise ValueError("decoration spacing must satisfy 0 < min <= max")
    covered = 0.0
    out: list[np.ndarray] = []
    while covered < length:
        step = float(rng.uniform(cfg.min_decoration_spacing, cfg.max_decoration_spacing))
        if covered + step > length:
            break
        out.append(start + direction * (covered + step / 2.0))
        covered += step
    return out


def decorate_roads(
    scene: Scene,
    cfg: GeneratorConfig,
    rng: np.random.Generator,
    prefabs: tuple[PrefabSpec, ...] = DEFAULT_PREFABS,
) -> list[SceneObject]:
    """
    Adds pairs of (pole, prefab) on both sides of every road and returns the new objects.

    Poles are untagged; prefab instances carry the detectable tag and a "(Clone)" name suffix.
    """
    added: list[SceneObject] = []
    for road in scene.find_by_tag(cfg.road_tag):
        extent = road_extent(road)
        if extent is None:
            logger.warning("Road %s (id %d) has no measurable extent, not decorated", road.name, road.object_id)
            continue
        lo, hi = extent
        size = hi - lo
        center = 0.5 * (lo + hi)
        along_x = bool(size[0] > size[2])
        if along_x:
            start = np.array([lo[0], hi[1], center[2]])
            length, width = float(size[0]), float(size[2])
            direction = np.array([1.0, 0.0, 0.0])
            cross = np.array([0.0, 0.0, 1.0])
        else:
            start = np.array([center[0], hi[1], lo[2]])
            length, width = float(size[2]), float(size[0])
            direction = np.array([0.0, 0.0, 1.0])
            cross = np.array([1.0, 0.0, 0.0])

        offset = width * cfg.decoration_offset_fraction
        positions = decoration_positions(start, length, direction, cfg, rng)
        for pos in positions:
            for side in (1.0, -1.0):
                base = pos + side * cross * offset
                added.extend(_place_pair(scene, base, along_x, cfg, rng, prefabs))
        logger.info("Generated %d pairs of poles and prefabs along road %s", len(positions), road.name)
    return added


def _place_pair(
    scene: Scene,
    base: np.ndarray,
    along_x: bool,
    cfg: GeneratorConfig,
    rng: np.random.Generator,
    prefabs: tuple[PrefabSpec, ...],
) -> list[SceneObject]:
    out = [
        scene.add(
            SceneObject(
                object_id=scene.next_object_id(),
                name="Cylinder",
                shapes=(Box(center=_vec(base + np.array([0.0, 1.0, 0.0])), size=POLE_SIZE),),
                color=(120, 120, 120),
            )
        )
    ]
    if not prefabs:
        return out

    spec = prefabs[int(rng.integers(0, len(prefabs)))]
    sx, sy, sz = spec.size
    # 90 degree yaw on X roads swaps the footprint axes.
    size = (sz, sy, sx) if along_x else (sx, sy, sz)
    out.append(
        scene.add(
            SceneObject(
                object_id=scene.next_object_id(),
                name=f"{spec.name}(Clone)",
                shapes=(Box(center=_vec(base + np.array([0.0, cfg.prefab_lift, 0.0])), size=size),),
                tags=frozenset({cfg.detect_tag}),
                color=spec.color,
            )
        )
    )
    return out


def _vec(v: np.ndarray) -> tuple[float, float, float]:
    return (float(v[0]), float(v[1]), float(v[2]))
