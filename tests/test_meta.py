import json

import pytest

from roadcapture.meta import (
    CaptureRequest,
    CaptureValidationError,
    capture_request_to_dict,
    load_capture_requests,
    parse_capture_request,
)


def _data(**kw):
    d = {
        "width": 960,
        "height": 540,
        "fov_deg": 10.0,
        "far_clip": 200.0,
        "position": [1, 6, 0],
        "rotation_deg": [0, 90, 0],
    }
    d.update(kw)
    return d


def test_parse_capture_request_ok():
    req = parse_capture_request(_data())
    assert req.position == (1.0, 6.0, 0.0)
    assert req.rotation_deg == (0.0, 90.0, 0.0)
    assert req.aspect == pytest.approx(960 / 540)


def test_parse_capture_request_roundtrip():
    req = parse_capture_request(_data(aspect=2.0))
    assert parse_capture_request(capture_request_to_dict(req)) == req


@pytest.mark.parametrize(
    "bad",
    [
        {"width": 0},
        {"fov_deg": 180.0},
        {"far_clip": -1.0},
        {"position": [0, 0]},
        {"position": [0, float("nan"), 0]},
        {"position": [0, "a", 0]},
        {"width": 1.7},
        {"height": "tall"},
        {"fov_deg": None},
    ],
)
def test_parse_capture_request_rejects(bad):
    with pytest.raises(CaptureValidationError):
        parse_capture_request(_data(**bad))


def test_load_capture_requests_jsonl(tmp_path):
    p = tmp_path / "requests.jsonl"
    p.write_text("\n".join(json.dumps(_data(position=[0, 0, z])) for z in (0, 10)) + "\n\n", encoding="utf-8")
    reqs = load_capture_requests(p)
    assert [r.position[2] for r in reqs] == [0.0, 10.0]
    assert all(isinstance(r, CaptureRequest) for r in reqs)


def test_parse_capture_request_error_names_the_field():
    with pytest.raises(CaptureValidationError, match="far_clip"):
        parse_capture_request(_data(far_clip="far"))
