from __future__ import annotations

import json
from pathlib import Path

from roadcapture.cli.main import main


def _write_scene(path: Path) -> None:
    scene = {
        "schema_version": "roadcapture.scene.v0",
        "objects": [
            {"name": "Road", "tags": ["Road"], "shape": {"type": "box", "center": [0, 0, 100], "size": [8, 0.2, 200]}},
            {
                "name": "SpeedSign(Clone)",
                "tags": ["CubeTag"],
                "shape": {"type": "box", "center": [0, 10, 50], "size": [8, 8, 1]},
            },
        ],
    }
    path.write_text(json.dumps(scene), encoding="utf-8")


def test_cli_generate_from_requests_then_validate(tmp_path: Path, capsys):
    scene = tmp_path / "scene.json"
    _write_scene(scene)
    requests = tmp_path / "requests.jsonl"
    req = {"width": 96, "height": 54, "fov_deg": 10.0, "far_clip": 200.0, "position": [0, 10, 0]}
    requests.write_text(json.dumps(req) + "\n", encoding="utf-8")
    out = tmp_path / "out"

    assert main(["generate", "--scene", str(scene), "--out", str(out), "--requests", str(requests)]) == 0
    assert "Wrote 1 captures (1 masks)" in capsys.readouterr().out
    assert (out / "Raw_image" / "Cam_1.png").is_file()
    assert (out / "Binary_image" / "Cam_1_SpeedSign.png").is_file()

    assert main(["validate-output", str(out)]) == 0
    assert "OK: 1 raw frames, 1 masks" in capsys.readouterr().out


def test_cli_generate_places_cameras_along_roads(tmp_path: Path, capsys):
    scene = tmp_path / "scene.json"
    _write_scene(scene)
    out = tmp_path / "out"

    rc = main(["generate", "--scene", str(scene), "--out", str(out), "--width", "32", "--height", "18", "--seed", "3"])
    assert rc == 0
    raws = sorted((out / "Raw_image").glob("Cam_*.png"))
    assert len(raws) >= 9 and len(raws) % 3 == 0
    manifest = (out / "captures.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(manifest) == len(raws)
    assert json.loads(manifest[0])["request"]["width"] == 32


def test_cli_grid_override_rederives_aspect_with_config_file(tmp_path: Path):
    scene = tmp_path / "scene.json"
    _write_scene(scene)
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({"schema_version": "roadcapture.config.v0", "seed": 5}), encoding="utf-8")
    out = tmp_path / "out"

    rc = main(
        ["generate", "--scene", str(scene), "--out", str(out), "--config", str(cfg), "--width", "40", "--height", "10"]
    )
    assert rc == 0
    first = json.loads((out / "captures.jsonl").read_text(encoding="utf-8").splitlines()[0])
    assert first["request"]["width"] == 40
    assert first["request"]["aspect"] == 4.0
