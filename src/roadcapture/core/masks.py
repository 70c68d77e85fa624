from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from roadcapture.core.scene import Hit, SceneObject


@dataclass
class MaskRecord:
    """
    Occupancy of one detectable object over a capture grid.

    occupancy is (H,W) bool indexed [row, col]. The box (min_x, max_x, min_y, max_y) is
    inclusive and always bounds exactly the True pixels recorded so far.
    """

    obj: SceneObject
    occupancy: np.ndarray
    min_x: int
    max_x: int
    min_y: int
    max_y: int

    @property
    def object_id(self) -> int:
        return self.obj.object_id

    @property
    def extent(self) -> tuple[int, int]:
        return (self.max_x - self.min_x, self.max_y - self.min_y)

    @property
    def bbox(self) -> tuple[int, int, int, int]:
        return (self.min_x, self.max_x, self.min_y, self.max_y)

    def mark(self, j: int, i: int) -> None:
        self.occupancy[i, j] = True
        if j < self.min_x:
            self.min_x = j
        if j > self.max_x:
            self.max_x = j
        if i < self.min_y:
            self.min_y = i
        if i > self.max_y:
            self.max_y = i


class MaskAggregator:
    """Accumulates per-object occupancy from per-pixel hits of one capture."""

    def __init__(self, width: int, height: int, detect_tag: str) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("width and height must be > 0")
        self.width = int(width)
        self.height = int(height)
        self.detect_tag = str(detect_tag)
        self._records: dict[int, MaskRecord] = {}
        self._detectable: dict[int, bool] = {}

    @property
    def records(self) -> list[MaskRecord]:
        """Records in first-hit order."""
        return list(self._records.values())

    def is_detectable(self, obj: SceneObject) -> bool:
        flag = self._detectable.get(obj.object_id)
        if flag is None:
            flag = obj.has_tag(self.detect_tag)
            self._detectable[obj.object_id] = flag
        return flag

    def add(self, j: int, i: int, hit: Hit | None) -> None:
        if hit is None or not self.is_detectable(hit.obj):
            return
        rec = self._records.get(hit.obj.object_id)
        if rec is None:
            rec = MaskRecord(
                obj=hit.obj,
                occupancy=np.zeros((self.height, self.width), dtype=bool),
                min_x=j,
                max_x=j,
                min_y=i,
                max_y=i,
            )
            self._records[hit.obj.object_id] = rec
        rec.mark(j, i)


def bounding_box_of(occupancy: np.ndarray) -> tuple[int, int, int, int] | None:
    """(min_x, max_x, min_y, max_y) of True pixels, or None when empty."""
    ys, xs = np.nonzero(occupancy)
    if xs.size == 0:
        return None
    return int(xs.min()), int(xs.max()), int(ys.min()), int(ys.max())


def passes_extent(record: MaskRecord, min_extent_px: int) -> bool:
    dx, dy = record.extent
    return dx > min_extent_px and dy > min_extent_px


def filter_masks(records: list[MaskRecord], min_extent_px: int) -> tuple[list[MaskRecord], list[MaskRecord]]:
    """Splits records into (kept, discarded) with a strict > test on both box extents."""
    kept: list[MaskRecord] = []
    discarded: list[MaskRecord] = []
    for rec in records:
        (kept if passes_extent(rec, min_extent_px) else discarded).append(rec)
    return kept, discarded
