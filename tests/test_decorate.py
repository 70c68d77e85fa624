from __future__ import annotations

import numpy as np
import pytest

from roadcapture.config import GeneratorConfig
from roadcapture.core.scene import Box, Scene, SceneObject, SceneValidationError
from roadcapture.sim.decorate import PrefabSpec, decorate_roads, decoration_positions, parse_prefabs


def _x_road() -> SceneObject:
    return SceneObject(
        object_id=1,
        name="Road",
        shapes=(Box(center=(50.0, 0.0, 0.0), size=(100.0, 0.2, 9.0)),),
        tags=frozenset({"Road"}),
    )


def test_positions_fit_inside_road():
    cfg = GeneratorConfig()
    pos = decoration_positions(np.zeros(3), 100.0, np.array([1.0, 0.0, 0.0]), cfg, np.random.default_rng(3))
    xs = [p[0] for p in pos]
    assert xs == sorted(xs)
    assert len(pos) >= 100.0 // cfg.max_decoration_spacing
    assert all(0.0 < x < 100.0 for x in xs)
    # Last segment end = last center + half segment <= road length.
    assert xs[-1] + cfg.min_decoration_spacing / 2.0 <= 100.0


def test_decorate_x_road_places_pole_and_prefab_pairs():
    cfg = GeneratorConfig()
    scene = Scene([_x_road()])
    spec = PrefabSpec(name="Sign", size=(1.2, 1.2, 0.1))
    added = decorate_roads(scene, cfg, np.random.default_rng(0), prefabs=(spec,))

    poles = [o for o in added if o.name == "Cylinder"]
    props = [o for o in added if o.name == "Sign(Clone)"]
    assert len(poles) == len(props) > 0
    assert len(poles) % 2 == 0
    assert len(scene.objects) == 1 + len(added)
    assert len({o.object_id for o in scene.objects}) == len(scene.objects)

    for pole in poles:
        assert not pole.tags
        (box,) = pole.shapes
        assert box.center[1] == pytest.approx(0.1 + 1.0)
        assert abs(box.center[2]) == pytest.approx(3.0)

    for prop in props:
        assert prop.has_tag(cfg.detect_tag)
        (box,) = prop.shapes
        assert box.size == (0.1, 1.2, 1.2)
        assert box.center[1] == pytest.approx(0.1 + cfg.prefab_lift)
        assert 0.0 < box.center[0] < 100.0


def test_decorate_skips_roads_without_extent():
    cfg = GeneratorConfig()
    scene = Scene([SceneObject(object_id=1, name="Road", shapes=(), tags=frozenset({"Road"}))])
    assert decorate_roads(scene, cfg, np.random.default_rng(0)) == []


def test_parse_prefabs_validates():
    (spec,) = parse_prefabs([{"name": "Cone", "size": [0.5, 1.0, 0.5], "color": [255, 128, 0]}])
    assert spec == PrefabSpec(name="Cone", size=(0.5, 1.0, 0.5), color=(255, 128, 0))
    with pytest.raises(SceneValidationError):
        parse_prefabs([{"name": "Bad", "size": [0, 1, 1]}])
