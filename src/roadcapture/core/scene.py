from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Protocol, Union

import numpy as np

from roadcapture.core.geometry import Ray

Vec3 = tuple[float, float, float]

_EPS = 1e-12


class SceneValidationError(ValueError):
    pass


@dataclass(frozen=True)
class Box:
    """Axis-aligned box given by center and full size."""

    center: Vec3
    size: Vec3

    @property
    def bounds_min(self) -> Vec3:
        return tuple(c - 0.5 * s for c, s in zip(self.center, self.size))  # type: ignore[return-value]

    @property
    def bounds_max(self) -> Vec3:
        return tuple(c + 0.5 * s for c, s in zip(self.center, self.size))  # type: ignore[return-value]

    def intersect(self, origin: Vec3, direction: Vec3, max_distance: float) -> tuple[float, Vec3] | None:
        lo = self.bounds_min
        hi = self.bounds_max
        t_near = -math.inf
        t_far = math.inf
        near_axis = -1
        for axis in range(3):
            o = origin[axis]
            d = direction[axis]
            if abs(d) < _EPS:
                if o < lo[axis] or o > hi[axis]:
                    return None
                continue
            t0 = (lo[axis] - o) / d
            t1 = (hi[axis] - o) / d
            if t0 > t1:
                t0, t1 = t1, t0
            if t0 > t_near:
                t_near = t0
                near_axis = axis
            if t1 < t_far:
                t_far = t1
            if t_near > t_far:
                return None
        # Rays starting inside (or on the far side of) the box do not report it.
        if near_axis < 0 or t_near < 0.0 or t_near > max_distance:
            return None
        normal = [0.0, 0.0, 0.0]
        normal[near_axis] = -1.0 if direction[near_axis] > 0 else 1.0
        return t_near, (normal[0], normal[1], normal[2])

    def intersect_many(self, origins: np.ndarray, directions: np.ndarray, max_distance: float) -> np.ndarray:
        lo = np.asarray(self.bounds_min, dtype=np.float64)
        hi = np.asarray(self.bounds_max, dtype=np.float64)
        o = np.broadcast_to(np.asarray(origins, dtype=np.float64), directions.shape)
        d = np.asarray(directions, dtype=np.float64)

        parallel = np.abs(d) < _EPS
        safe_d = np.where(parallel, 1.0, d)
        t0 = (lo - o) / safe_d
        t1 = (hi - o) / safe_d
        t_lo = np.minimum(t0, t1)
        t_hi = np.maximum(t0, t1)
        outside_slab = parallel & ((o < lo) | (o > hi))
        t_lo = np.where(parallel, -np.inf, t_lo)
        t_hi = np.where(parallel, np.inf, t_hi)

        t_near = np.max(t_lo, axis=-1)
        t_far = np.min(t_hi, axis=-1)
        hit = (
            ~np.any(outside_slab, axis=-1)
            & (t_near <= t_far)
            & np.isfinite(t_near)
            & (t_near >= 0.0)
            & (t_near <= max_distance)
        )
        return np.where(hit, t_near, np.inf)


@dataclass(frozen=True)
class Sphere:
    center: Vec3
    radius: float

    @property
    def bounds_min(self) -> Vec3:
        return tuple(c - self.radius for c in self.center)  # type: ignore[return-value]

    @property
    def bounds_max(self) -> Vec3:
        return tuple(c + self.radius for c in self.center)  # type: ignore[return-value]

    def intersect(self, origin: Vec3, direction: Vec3, max_distance: float) -> tuple[float, Vec3] | None:
        ox = origin[0] - self.center[0]
        oy = origin[1] - self.center[1]
        oz = origin[2] - self.center[2]
        b = ox * direction[0] + oy * direction[1] + oz * direction[2]
        c = ox * ox + oy * oy + oz * oz - self.radius * self.radius
        if c <= 0.0:
            return None  # origin inside
        disc = b * b - c
        if b > 0.0 or disc < 0.0:
            return None
        t = -b - math.sqrt(disc)
        if t < 0.0 or t > max_distance:
            return None
        px = origin[0] + t * direction[0] - self.center[0]
        py = origin[1] + t * direction[1] - self.center[1]
        pz = origin[2] + t * direction[2] - self.center[2]
        inv_r = 1.0 / self.radius
        return t, (px * inv_r, py * inv_r, pz * inv_r)

    def intersect_many(self, origins: np.ndarray, directions: np.ndarray, max_distance: float) -> np.ndarray:
        d = np.asarray(directions, dtype=np.float64)
        oc = np.broadcast_to(np.asarray(origins, dtype=np.float64), d.shape) - np.asarray(self.center)
        b = np.sum(oc * d, axis=-1)
        c = np.sum(oc * oc, axis=-1) - self.radius * self.radius
        disc = b * b - c
        t = -b - np.sqrt(np.maximum(disc, 0.0))
        hit = (c > 0.0) & (b <= 0.0) & (disc >= 0.0) & (t >= 0.0) & (t <= max_distance)
        return np.where(hit, t, np.inf)


Shape = Union[Box, Sphere]


@dataclass(frozen=True)
class SceneObject:
    """
    A logical scene object. Each shape is one surface patch; all patches share `object_id`.
    """

    object_id: int
    name: str
    shapes: tuple[Shape, ...]
    tags: frozenset[str] = field(default_factory=frozenset)
    color: tuple[int, int, int] = (180, 180, 180)

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    @property
    def bounds(self) -> tuple[Vec3, Vec3] | None:
        if not self.shapes:
            return None
        lo = np.min([s.bounds_min for s in self.shapes], axis=0)
        hi = np.max([s.bounds_max for s in self.shapes], axis=0)
        return (tuple(float(v) for v in lo), tuple(float(v) for v in hi))  # type: ignore[return-value]


@dataclass(frozen=True)
class Hit:
    obj: SceneObject
    point: Vec3
    normal: Vec3
    distance: float


class GeometryQuery(Protocol):
    """Nearest-hit ray query. Must be deterministic and side-effect free for a static scene."""

    def query(self, ray: Ray, max_distance: float) -> Hit | None:
        ...


class Scene:
    """Brute-force list of objects; implements `GeometryQuery`."""

    def __init__(self, objects: Iterable[SceneObject] = ()) -> None:
        self._objects: list[SceneObject] = []
        for obj in objects:
            self.add(obj)

    @property
    def objects(self) -> tuple[SceneObject, ...]:
        return tuple(self._objects)

    def next_object_id(self) -> int:
        return max((o.object_id for o in self._objects), default=0) + 1

    def add(self, obj: SceneObject) -> SceneObject:
        if any(o.object_id == obj.object_id for o in self._objects):
            raise SceneValidationError(f"duplicate object_id: {obj.object_id}")
        self._objects.append(obj)
        return obj

    def find_by_tag(self, tag: str) -> list[SceneObject]:
        return [o for o in self._objects if o.has_tag(tag)]

    def query(self, ray: Ray, max_distance: float) -> Hit | None:
        best_t = math.inf
        best: tuple[SceneObject, Vec3] | None = None
        for obj in self._objects:
            for shape in obj.shapes:
                res = shape.intersect(ray.origin, ray.direction, max_distance)
                if res is not None and res[0] < best_t:
                    best_t = res[0]
                    best = (obj, res[1])
        if best is None:
            return None
        o, d = ray.origin, ray.direction
        point = (o[0] + best_t * d[0], o[1] + best_t * d[1], o[2] + best_t * d[2])
        return Hit(obj=best[0], point=point, normal=best[1], distance=best_t)

    def nearest_many(self, origin: Vec3, directions: np.ndarray, max_distance: float) -> tuple[np.ndarray, np.ndarray]:
        """
        Vectorized nearest hit for rays sharing one origin.
        Returns (object_index, distance) shaped like directions[..., 0]; index -1 / inf = no hit.
        """
        shape = directions.shape[:-1]
        best_t = np.full(shape, np.inf, dtype=np.float64)
        best_idx = np.full(shape, -1, dtype=np.int64)
        origins = np.asarray(origin, dtype=np.float64)
        for k, obj in enumerate(self._objects):
            for s in obj.shapes:
                t = s.intersect_many(origins, directions, max_distance)
                closer = t < best_t
                best_t = np.where(closer, t, best_t)
                best_idx = np.where(closer, k, best_idx)
        return best_idx, best_t


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise SceneValidationError(msg)


def _vec3(raw: Any, name: str) -> Vec3:
    _require(isinstance(raw, (list, tuple)) and len(raw) == 3, f"{name} must be [x,y,z]")
    v = tuple(float(c) for c in raw)
    _require(all(math.isfinite(c) for c in v), f"{name} must be finite")
    return v  # type: ignore[return-value]


def parse_shape(data: dict[str, Any]) -> Shape:
    kind = data.get("type")
    if kind == "box":
        size = _vec3(data.get("size"), "box.size")
        _require(all(s >= 0.0 for s in size), "box.size must be >= 0")
        return Box(center=_vec3(data.get("center"), "box.center"), size=size)
    if kind == "sphere":
        radius = float(data.get("radius", 0.0))
        _require(radius > 0.0, "sphere.radius must be > 0")
        return Sphere(center=_vec3(data.get("center"), "sphere.center"), radius=radius)
    raise SceneValidationError(f"unsupported shape type: {kind}")


def shape_to_dict(shape: Shape) -> dict[str, Any]:
    if isinstance(shape, Box):
        return {"type": "box", "center": list(shape.center), "size": list(shape.size)}
    return {"type": "sphere", "center": list(shape.center), "radius": float(shape.radius)}


def parse_scene_object(data: dict[str, Any], object_id: int) -> SceneObject:
    name = data.get("name")
    _require(isinstance(name, str) and bool(name), "object.name is required")
    shapes_raw = data.get("shapes")
    if shapes_raw is None and "shape" in data:
        shapes_raw = [data["shape"]]
    # Objects without shapes are allowed (they never hit); road placement skips them.
    shapes_raw = shapes_raw or []
    _require(isinstance(shapes_raw, list), f"{name}: shapes must be a list")
    tags = data.get("tags", [])
    _require(isinstance(tags, list), f"{name}: tags must be a list")
    color = data.get("color", [180, 180, 180])
    _require(isinstance(color, (list, tuple)) and len(color) == 3, f"{name}: color must be [r,g,b]")
    return SceneObject(
        object_id=int(data.get("id", object_id)),
        name=name,
        shapes=tuple(parse_shape(s) for s in shapes_raw),
        tags=frozenset(str(t) for t in tags),
        color=tuple(int(np.clip(int(c), 0, 255)) for c in color),  # type: ignore[arg-type]
    )


def parse_scene(data: dict[str, Any]) -> Scene:
    _require(data.get("schema_version") == "roadcapture.scene.v0", "schema_version must be roadcapture.scene.v0")
    objects = data.get("objects", [])
    _require(isinstance(objects, list), "objects must be a list")
    scene = Scene()
    for k, obj in enumerate(objects, start=1):
        scene.add(parse_scene_object(obj, object_id=k))
    return scene


def load_scene(path: Path) -> tuple[Scene, list[dict[str, Any]]]:
    """Returns (scene, prefab specs). Prefab specs are passed through unparsed."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    prefabs = data.get("prefabs", [])
    _require(isinstance(prefabs, list), "prefabs must be a list")
    return parse_scene(data), prefabs


def scene_to_dict(scene: Scene) -> dict[str, Any]:
    return {
        "schema_version": "roadcapture.scene.v0",
        "objects": [
            {
                "id": o.object_id,
                "name": o.name,
                "shapes": [shape_to_dict(s) for s in o.shapes],
                "tags": sorted(o.tags),
                "color": list(o.color),
            }
            for o in scene.objects
        ],
    }
