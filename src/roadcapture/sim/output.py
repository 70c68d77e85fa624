from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from roadcapture.core.image_io import mask_to_rgb, save_rgb_png
from roadcapture.core.masks import MaskRecord, filter_masks

logger = logging.getLogger(__name__)

RAW_DIR = "Raw_image"
BINARY_DIR = "Binary_image"
PREFIX = "Cam_"

_CLONE_MARKER = re.compile(r"\(Clone\)")
_UNSAFE = re.compile(r"[\\/:*?\"<>|]")
_DIGITS = re.compile(r"^[0-9]+$")


class CaptureWriteError(OSError):
    def __init__(self, index: int, path: Path, cause: OSError) -> None:
        super().__init__(f"capture {index}: failed to write {path}: {cause}")
        self.index = index
        self.path = path
        self.cause = cause

    def __reduce__(self):
        # Rebuilt from constructor args when crossing a process pool boundary.
        return (self.__class__, (self.index, self.path, self.cause))


@dataclass(frozen=True)
class OutputLayout:
    root: Path

    @property
    def raw_dir(self) -> Path:
        return self.root / RAW_DIR

    @property
    def binary_dir(self) -> Path:
        return self.root / BINARY_DIR

    @property
    def manifest_path(self) -> Path:
        return self.root / "captures.jsonl"

    def raw_path(self, index: int) -> Path:
        return self.raw_dir / f"{PREFIX}{index}.png"

    def mask_path(self, index: int, display_name: str) -> Path:
        return self.binary_dir / f"{PREFIX}{index}_{display_name}.png"


def display_name(name: str) -> str:
    """Object name for filenames: clone markers stripped, path separators replaced."""
    name = _CLONE_MARKER.sub("", name).strip()
    return _UNSAFE.sub("_", name)


def max_existing_index(folder: Path, prefix: str = PREFIX, start: int = 0) -> int:
    """
    Highest integer N among files named `{prefix}N.<ext>` in folder (start if none).
    Names whose middle part is not made of ASCII digits only are ignored.
    """
    max_index = int(start)
    if not folder.is_dir():
        return max_index
    for p in folder.glob(f"{prefix}*"):
        if not p.is_file():
            continue
        number = p.name[len(prefix) : p.name.rfind(".")] if "." in p.name else p.name[len(prefix) :]
        if _DIGITS.match(number) is None:
            continue
        index = int(number)
        if index > max_index:
            max_index = index
    return max_index


def next_capture_index(layout: OutputLayout) -> int:
    """Next index recovered from already-written raw frames (not from memory)."""
    return max_existing_index(layout.raw_dir) + 1


class CaptureIndexAllocator:
    """
    Hands out capture indices for one output root.

    Allocation is serialized inside this process and never returns an index at or below one
    already handed out. Other processes writing the same root are not coordinated.
    """

    def __init__(self, layout: OutputLayout) -> None:
        self.layout = layout
        self._lock = threading.Lock()
        self._high_water = 0

    def allocate(self) -> int:
        with self._lock:
            index = max(next_capture_index(self.layout), self._high_water + 1)
            self._high_water = index
            return index


@dataclass(frozen=True)
class EmittedMask:
    object_id: int
    name: str
    path: Path
    bbox: tuple[int, int, int, int]


@dataclass(frozen=True)
class CaptureResult:
    index: int
    raw_path: Path
    masks: tuple[EmittedMask, ...] = field(default_factory=tuple)
    discarded: tuple[str, ...] = field(default_factory=tuple)


def _write(index: int, path: Path, img_u8: np.ndarray) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        save_rgb_png(path, img_u8)
    except OSError as e:
        raise CaptureWriteError(index, path, e) from e


def emit_capture(
    layout: OutputLayout,
    index: int,
    frame: np.ndarray,
    records: list[MaskRecord],
    min_extent_px: int,
) -> CaptureResult:
    """
    Writes the raw frame once, then one binary mask per record whose box extent exceeds
    min_extent_px on both axes. Smaller records are dropped silently (debug log only).

    On a write failure every file of this capture written so far is removed before the
    CaptureWriteError propagates, so a failed capture leaves nothing behind.
    """
    frame = np.asarray(frame)
    kept, discarded = filter_masks(records, min_extent_px)
    for rec in kept:
        if rec.occupancy.shape != frame.shape[:2]:
            raise ValueError(f"mask shape {rec.occupancy.shape} != frame shape {frame.shape[:2]}")
    for rec in discarded:
        logger.debug("Discarded %s in capture %d: extent %s <= %d px", rec.obj.name, index, rec.extent, min_extent_px)

    raw_path = layout.raw_path(index)
    written: list[Path] = []
    emitted: list[EmittedMask] = []
    try:
        _write(index, raw_path, frame)
        written.append(raw_path)
        logger.info("Saved raw image to %s", raw_path)

        for rec in kept:
            name = display_name(rec.obj.name)
            if any(m.name == name for m in emitted):
                logger.warning("Capture %d: mask name %s used by several objects, last one wins", index, name)
            path = layout.mask_path(index, name)
            _write(index, path, mask_to_rgb(rec.occupancy))
            written.append(path)
            logger.info("Saved segmented image for %s to %s", rec.obj.name, path)
            emitted.append(EmittedMask(object_id=rec.object_id, name=name, path=path, bbox=rec.bbox))
    except CaptureWriteError:
        for p in written:
            p.unlink(missing_ok=True)
        logger.warning("Capture %d: removed %d files after failed write", index, len(written))
        raise

    return CaptureResult(
        index=index,
        raw_path=raw_path,
        masks=tuple(emitted),
        discarded=tuple(rec.obj.name for rec in discarded),
    )
