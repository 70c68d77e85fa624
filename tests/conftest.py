from __future__ import annotations

import math

import pytest

from roadcapture.core.geometry import Ray
from roadcapture.core.scene import Hit, SceneObject
from roadcapture.meta import CaptureRequest


class PixelRegionQuery:
    """
    Test double for the geometry query: maps each ray back to its pixel and reports a hit
    for objects covering rectangular pixel regions. Only valid for an unrotated camera.
    """

    def __init__(self, req: CaptureRequest, regions: list[tuple[SceneObject, int, int, int, int]]) -> None:
        assert req.rotation_deg == (0.0, 0.0, 0.0)
        self.req = req
        self.regions = regions
        self.calls = 0
        self.half_h = req.far_clip * math.tan(math.radians(req.fov_deg) * 0.5)
        self.half_w = self.half_h * req.aspect

    def pixel_of(self, ray: Ray) -> tuple[int, int]:
        dx, dy, dz = ray.direction
        s = self.req.far_clip / dz
        x = dx * s
        y = dy * s
        j = round((x + self.half_w) / (2.0 * self.half_w) * self.req.width)
        i = round((self.half_h - y) / (2.0 * self.half_h) * self.req.height)
        return j, i

    def query(self, ray: Ray, max_distance: float) -> Hit | None:
        self.calls += 1
        j, i = self.pixel_of(ray)
        for obj, x0, y0, w, h in self.regions:
            if x0 <= j < x0 + w and y0 <= i < y0 + h:
                return Hit(obj=obj, point=(0.0, 0.0, max_distance), normal=(0.0, 0.0, -1.0), distance=max_distance)
        return None


def make_request(width: int = 96, height: int = 54, **kw) -> CaptureRequest:
    params = dict(
        width=width,
        height=height,
        fov_deg=10.0,
        aspect=width / height,
        far_clip=200.0,
        position=(0.0, 0.0, 0.0),
        rotation_deg=(0.0, 0.0, 0.0),
    )
    params.update(kw)
    return CaptureRequest(**params)


def make_object(object_id: int, name: str = "Sign(Clone)", tags: tuple[str, ...] = ("CubeTag",)) -> SceneObject:
    return SceneObject(object_id=object_id, name=name, shapes=(), tags=frozenset(tags))


@pytest.fixture
def region_query():
    return PixelRegionQuery


@pytest.fixture
def request_factory():
    return make_request


@pytest.fixture
def object_factory():
    return make_object
