from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image

FOREGROUND = (255, 255, 255)
BACKGROUND = (0, 0, 0)


def mask_to_rgb(occupancy: np.ndarray) -> np.ndarray:
    """(H,W) bool -> (H,W,3) uint8 with white foreground on black."""
    occ = np.asarray(occupancy, dtype=bool)
    out = np.empty(occ.shape + (3,), dtype=np.uint8)
    out[...] = np.asarray(BACKGROUND, dtype=np.uint8)
    out[occ] = np.asarray(FOREGROUND, dtype=np.uint8)
    return out


def save_rgb_png(path: str | Path, img_u8: np.ndarray) -> None:
    arr = np.asarray(img_u8)
    if arr.ndim != 3 or arr.shape[2] != 3 or arr.dtype != np.uint8:
        raise ValueError("expected (H,W,3) uint8 image")
    Image.fromarray(arr).save(Path(path), format="PNG")


def load_rgb_u8(path: str | Path) -> np.ndarray:
    """
    Load an image as (H,W,3) uint8 RGB.

    Primary backend is OpenCV (if installed). Pillow is used as a fallback.
    """
    p = Path(path)
    try:
        import cv2  # type: ignore

        img = cv2.imread(str(p), cv2.IMREAD_COLOR)
        if img is not None:
            return cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
    except ImportError:
        # Fall back to Pillow below.
        pass

    with Image.open(p) as im:
        if im.mode != "RGB":
            raise ValueError(f"{p} is not a 3-channel RGB image (mode {im.mode})")
        arr = np.asarray(im, dtype=np.uint8)
    return arr


def image_size(path: str | Path) -> tuple[tuple[int, int], str]:
    """((width, height), mode) without decoding pixels."""
    with Image.open(Path(path)) as im:
        return im.size, im.mode
