from __future__ import annotations

import re
from pathlib import Path

import numpy as np

from roadcapture.core.image_io import FOREGROUND, BACKGROUND, image_size, load_rgb_u8
from roadcapture.sim.output import OutputLayout

_RAW_NAME = re.compile(r"^Cam_(\d+)\.png$")
_MASK_NAME = re.compile(r"^Cam_(\d+)_(.+)\.png$")


def validate_output(root: Path) -> dict[str, int]:
    """
    Checks an output tree written by `emit_capture`. Returns counts {"raw": n, "masks": m}.
    """
    layout = OutputLayout(root=Path(root).resolve())
    if not layout.raw_dir.is_dir():
        raise FileNotFoundError(f"Missing {layout.raw_dir}")

    raw_sizes: dict[int, tuple[int, int]] = {}
    for p in sorted(layout.raw_dir.iterdir()):
        m = _RAW_NAME.match(p.name)
        if m is None:
            raise ValueError(f"Unexpected file in {layout.raw_dir}: {p.name}")
        index = int(m.group(1))
        if index < 1:
            raise ValueError(f"{p} index must be >= 1")
        size, mode = image_size(p)
        if mode != "RGB":
            raise ValueError(f"{p} must be 3-channel RGB, got {mode}")
        raw_sizes[index] = size

    n_masks = 0
    if layout.binary_dir.is_dir():
        for p in sorted(layout.binary_dir.iterdir()):
            m = _MASK_NAME.match(p.name)
            if m is None:
                raise ValueError(f"Unexpected file in {layout.binary_dir}: {p.name}")
            index = int(m.group(1))
            if index not in raw_sizes:
                raise FileNotFoundError(f"{p} has no raw frame {layout.raw_path(index)}")
            _validate_mask(p, raw_sizes[index])
            n_masks += 1

    return {"raw": len(raw_sizes), "masks": n_masks}


def _validate_mask(path: Path, expected_size: tuple[int, int]) -> None:
    size, mode = image_size(path)
    if mode != "RGB":
        raise ValueError(f"{path} must be 3-channel RGB, got {mode}")
    if size != expected_size:
        raise ValueError(f"{path} size {size} != raw frame size {expected_size}")

    img = load_rgb_u8(path)
    fg = np.all(img == np.asarray(FOREGROUND, dtype=np.uint8), axis=-1)
    bg = np.all(img == np.asarray(BACKGROUND, dtype=np.uint8), axis=-1)
    if not np.all(fg | bg):
        raise ValueError(f"{path} contains pixels other than foreground/background")
    if not np.any(fg):
        raise ValueError(f"{path} has no foreground pixels")
