from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from roadcapture.meta import CaptureRequest

FORWARD = np.array([0.0, 0.0, 1.0], dtype=np.float64)
RIGHT = np.array([1.0, 0.0, 0.0], dtype=np.float64)
UP = np.array([0.0, 1.0, 0.0], dtype=np.float64)


@dataclass(frozen=True)
class Ray:
    origin: tuple[float, float, float]
    direction: tuple[float, float, float]  # unit length


def _rot_x(a: float) -> np.ndarray:
    ca, sa = np.cos(a), np.sin(a)
    return np.array([[1, 0, 0], [0, ca, -sa], [0, sa, ca]], dtype=np.float64)


def _rot_y(a: float) -> np.ndarray:
    ca, sa = np.cos(a), np.sin(a)
    return np.array([[ca, 0, sa], [0, 1, 0], [-sa, 0, ca]], dtype=np.float64)


def _rot_z(a: float) -> np.ndarray:
    ca, sa = np.cos(a), np.sin(a)
    return np.array([[ca, -sa, 0], [sa, ca, 0], [0, 0, 1]], dtype=np.float64)


def rotation_from_euler_deg(rotation_deg: tuple[float, float, float]) -> np.ndarray:
    """
    (pitch, yaw, roll) in degrees -> 3x3 rotation, applied roll first, then pitch, then yaw.

    Positive pitch tilts the view down, positive yaw turns it from +Z towards +X.
    """
    pitch, yaw, roll = (math.radians(float(a)) for a in rotation_deg)
    return _rot_y(yaw) @ _rot_x(pitch) @ _rot_z(roll)


def camera_basis(rotation_deg: tuple[float, float, float]) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Returns (forward, right, up) in world coordinates."""
    R = rotation_from_euler_deg(rotation_deg)
    return R @ FORWARD, R @ RIGHT, R @ UP


def far_clip_plane_corners(
    fov_deg: float,
    aspect: float,
    far: float,
    position: tuple[float, float, float],
    rotation_deg: tuple[float, float, float],
) -> np.ndarray:
    """
    Corners of the far-clip plane, shape (4,3): top-left, top-right, bottom-left, bottom-right.
    """
    half_h = float(far) * math.tan(math.radians(float(fov_deg)) * 0.5)
    half_w = half_h * float(aspect)

    forward, right, up = camera_basis(rotation_deg)
    center = np.asarray(position, dtype=np.float64) + forward * float(far)

    return np.stack(
        [
            center - right * half_w + up * half_h,
            center + right * half_w + up * half_h,
            center - right * half_w - up * half_h,
            center + right * half_w - up * half_h,
        ],
        axis=0,
    )


def _far_plane_points(corners: np.ndarray, x_factor: np.ndarray, y_factor: np.ndarray) -> np.ndarray:
    tl, tr, bl, br = corners
    x = np.asarray(x_factor, dtype=np.float64)[..., None]
    y = np.asarray(y_factor, dtype=np.float64)[..., None]
    top = tl + (tr - tl) * x
    bottom = bl + (br - bl) * x
    return top + (bottom - top) * y


def ray_directions(req: CaptureRequest) -> np.ndarray:
    """
    Unit ray directions for every pixel, shape (H,W,3). Row i=0 is the top edge of the far plane.

    Interpolation factors are j/W and i/H, so the last column/row stops one pixel short of the
    right/bottom far-plane edge. Kept as-is: emitted masks depend on this sampling.
    """
    corners = far_clip_plane_corners(req.fov_deg, req.aspect, req.far_clip, req.position, req.rotation_deg)
    jj, ii = np.meshgrid(np.arange(req.width), np.arange(req.height))
    pts = _far_plane_points(corners, jj / float(req.width), ii / float(req.height))
    dirs = pts - np.asarray(req.position, dtype=np.float64)
    return dirs / np.linalg.norm(dirs, axis=-1, keepdims=True)


def pixel_ray(req: CaptureRequest, j: int, i: int) -> Ray:
    """Single-pixel variant of `ray_directions` for column j, row i."""
    if not (0 <= j < req.width and 0 <= i < req.height):
        raise IndexError(f"pixel ({j},{i}) outside {req.width}x{req.height} grid")
    corners = far_clip_plane_corners(req.fov_deg, req.aspect, req.far_clip, req.position, req.rotation_deg)
    pt = _far_plane_points(corners, np.float64(j / float(req.width)), np.float64(i / float(req.height)))
    d = pt - np.asarray(req.position, dtype=np.float64)
    d = d / np.linalg.norm(d)
    return Ray(origin=tuple(float(c) for c in req.position), direction=tuple(float(c) for c in d))
