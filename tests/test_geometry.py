import math

import numpy as np

from roadcapture.core.geometry import (
    camera_basis,
    far_clip_plane_corners,
    pixel_ray,
    ray_directions,
    rotation_from_euler_deg,
)
from roadcapture.meta import CaptureRequest


def _req(**kw) -> CaptureRequest:
    params = dict(
        width=16,
        height=9,
        fov_deg=60.0,
        aspect=16 / 9,
        far_clip=100.0,
        position=(1.0, 2.0, 3.0),
        rotation_deg=(0.0, 0.0, 0.0),
    )
    params.update(kw)
    return CaptureRequest(**params)


def test_yaw_turns_forward_towards_plus_x():
    forward, right, up = camera_basis((0.0, 90.0, 0.0))
    assert np.allclose(forward, [1.0, 0.0, 0.0])
    assert np.allclose(right, [0.0, 0.0, -1.0])
    assert np.allclose(up, [0.0, 1.0, 0.0])


def test_positive_pitch_looks_down():
    forward, _right, _up = camera_basis((30.0, 0.0, 0.0))
    assert forward[1] < 0.0
    assert math.isclose(forward[2], math.cos(math.radians(30.0)))


def test_rotation_is_orthonormal():
    R = rotation_from_euler_deg((12.0, -37.0, 5.0))
    assert np.allclose(R @ R.T, np.eye(3))
    assert math.isclose(np.linalg.det(R), 1.0)


def test_far_clip_corners_extent():
    fov, aspect, far = 10.0, 960 / 540, 200.0
    corners = far_clip_plane_corners(fov, aspect, far, (0.0, 0.0, 0.0), (0.0, 0.0, 0.0))
    half_h = far * math.tan(math.radians(fov / 2))
    half_w = half_h * aspect
    tl, tr, bl, br = corners
    assert np.allclose(tl, [-half_w, half_h, far])
    assert np.allclose(tr, [half_w, half_h, far])
    assert np.allclose(bl, [-half_w, -half_h, far])
    assert np.allclose(br, [half_w, -half_h, far])


def test_ray_grid_is_unit_and_starts_at_top_left_corner():
    req = _req()
    dirs = ray_directions(req)
    assert dirs.shape == (9, 16, 3)
    assert np.allclose(np.linalg.norm(dirs, axis=-1), 1.0)

    tl = far_clip_plane_corners(req.fov_deg, req.aspect, req.far_clip, req.position, req.rotation_deg)[0]
    expected = tl - np.asarray(req.position)
    assert np.allclose(dirs[0, 0], expected / np.linalg.norm(expected))


def test_last_pixel_stops_short_of_far_edge():
    req = _req()
    corners = far_clip_plane_corners(req.fov_deg, req.aspect, req.far_clip, req.position, req.rotation_deg)
    br = corners[3] - np.asarray(req.position)
    br /= np.linalg.norm(br)
    last = ray_directions(req)[-1, -1]
    assert not np.allclose(last, br)

    # The bottom-right ray lands at factors (W-1)/W, (H-1)/H on the far plane.
    tl, tr, bl, _ = corners
    x = (req.width - 1) / req.width
    y = (req.height - 1) / req.height
    top = tl + (tr - tl) * x
    bottom = bl + (corners[3] - bl) * x
    p = top + (bottom - top) * y - np.asarray(req.position)
    assert np.allclose(last, p / np.linalg.norm(p))


def test_pixel_ray_matches_grid():
    req = _req(rotation_deg=(5.0, 33.0, -2.0))
    dirs = ray_directions(req)
    for j, i in [(0, 0), (15, 0), (0, 8), (7, 4), (15, 8)]:
        ray = pixel_ray(req, j, i)
        assert ray.origin == req.position
        assert np.allclose(ray.direction, dirs[i, j], atol=1e-12)
