from __future__ import annotations

from typing import Iterator

from roadcapture.core.geometry import Ray, ray_directions
from roadcapture.core.masks import MaskAggregator, MaskRecord
from roadcapture.core.scene import GeometryQuery, Hit
from roadcapture.meta import CaptureRequest


def sample_frame(query: GeometryQuery, req: CaptureRequest) -> Iterator[tuple[int, int, Hit | None]]:
    """
    Casts one ray per pixel and yields (j, i, hit) with rows outer, columns inner.
    Ray length is bounded by the far clip distance.
    """
    origin = tuple(float(c) for c in req.position)
    # Python floats keep the per-pixel query on scalar arithmetic.
    dirs = ray_directions(req).tolist()
    max_distance = float(req.far_clip)
    for i in range(req.height):
        row = dirs[i]
        for j in range(req.width):
            yield j, i, query.query(Ray(origin=origin, direction=tuple(row[j])), max_distance)


def extract_masks(query: GeometryQuery, req: CaptureRequest, detect_tag: str) -> list[MaskRecord]:
    agg = MaskAggregator(req.width, req.height, detect_tag)
    for j, i, hit in sample_frame(query, req):
        agg.add(j, i, hit)
    return agg.records
