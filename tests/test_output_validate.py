from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from roadcapture.sim.output_validate import validate_output


def _write_rgb(path: Path, arr: np.ndarray) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(arr.astype(np.uint8)).save(path)


def _mask(h: int = 6, w: int = 8) -> np.ndarray:
    m = np.zeros((h, w, 3), dtype=np.uint8)
    m[1:3, 2:5] = 255
    return m


def test_validate_output_ok(tmp_path: Path):
    _write_rgb(tmp_path / "Raw_image" / "Cam_1.png", np.full((6, 8, 3), 40))
    _write_rgb(tmp_path / "Binary_image" / "Cam_1_Sign.png", _mask())
    assert validate_output(tmp_path) == {"raw": 1, "masks": 1}


def test_validate_output_missing_raw_dir(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        validate_output(tmp_path)


def test_validate_output_orphan_mask(tmp_path: Path):
    _write_rgb(tmp_path / "Raw_image" / "Cam_1.png", np.zeros((6, 8, 3)))
    _write_rgb(tmp_path / "Binary_image" / "Cam_2_Sign.png", _mask())
    with pytest.raises(FileNotFoundError):
        validate_output(tmp_path)


def test_validate_output_size_mismatch(tmp_path: Path):
    _write_rgb(tmp_path / "Raw_image" / "Cam_1.png", np.zeros((6, 8, 3)))
    _write_rgb(tmp_path / "Binary_image" / "Cam_1_Sign.png", _mask(h=5))
    with pytest.raises(ValueError):
        validate_output(tmp_path)


def test_validate_output_rejects_gray_levels(tmp_path: Path):
    _write_rgb(tmp_path / "Raw_image" / "Cam_1.png", np.zeros((6, 8, 3)))
    m = _mask()
    m[0, 0] = 128
    _write_rgb(tmp_path / "Binary_image" / "Cam_1_Sign.png", m)
    with pytest.raises(ValueError):
        validate_output(tmp_path)
