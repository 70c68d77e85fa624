from __future__ import annotations

import numpy as np

from roadcapture.core.geometry import ray_directions
from roadcapture.core.scene import Scene
from roadcapture.meta import CaptureRequest

SKY_RGB = (135, 170, 210)


def render_frame(scene: Scene, req: CaptureRequest, background: tuple[int, int, int] = SKY_RGB) -> np.ndarray:
    """
    Vectorized flat-shaded render over the capture ray grid, (H,W,3) uint8.

    Object color is darkened linearly with hit distance (down to 40% at the far clip).
    """
    dirs = ray_directions(req)
    idx, dist = scene.nearest_many(req.position, dirs, float(req.far_clip))

    img = np.empty(dirs.shape, dtype=np.float64)
    img[...] = np.asarray(background, dtype=np.float64)

    objects = scene.objects
    if objects:
        palette = np.asarray([o.color for o in objects], dtype=np.float64)
        hit = idx >= 0
        shade = 1.0 - 0.6 * np.clip(dist[hit] / float(req.far_clip), 0.0, 1.0)
        img[hit] = palette[idx[hit]] * shade[:, None]

    return np.clip(img + 0.5, 0.0, 255.0).astype(np.uint8)
