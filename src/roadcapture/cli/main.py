from __future__ import annotations

import argparse
import dataclasses
import logging
from pathlib import Path

import numpy as np

from roadcapture.config import GeneratorConfig, load_config, validate_config
from roadcapture.core.scene import load_scene
from roadcapture.logging_config import setup_logging
from roadcapture.meta import load_capture_requests
from roadcapture.sim.decorate import DEFAULT_PREFABS, decorate_roads, parse_prefabs
from roadcapture.sim.generate_dataset import generate_dataset
from roadcapture.sim.output_validate import validate_output
from roadcapture.sim.placement import place_cameras_on_roads

logger = logging.getLogger(__name__)

# CLI flag -> GeneratorConfig field; flags left at None keep the config value.
_OVERRIDES = {
    "width": "width",
    "height": "height",
    "fov": "fov_deg",
    "aspect": "aspect",
    "far": "far_clip",
    "threshold": "min_extent_px",
    "detect_tag": "detect_tag",
    "road_tag": "road_tag",
    "seed": "seed",
    "workers": "workers",
}


def _build_config(args: argparse.Namespace) -> GeneratorConfig:
    cfg = load_config(args.config) if args.config is not None else GeneratorConfig()
    changes = {field: getattr(args, flag) for flag, field in _OVERRIDES.items() if getattr(args, flag) is not None}
    if args.decorate:
        changes["decorate"] = True
    # An overridden grid size re-derives aspect unless --aspect is given.
    if ("width" in changes or "height" in changes) and "aspect" not in changes:
        changes["aspect"] = float(changes.get("width", cfg.width)) / float(changes.get("height", cfg.height))
    cfg = dataclasses.replace(cfg, **changes)
    validate_config(cfg)
    return cfg


def _cmd_generate(args: argparse.Namespace) -> int:
    cfg = _build_config(args)
    scene, prefab_specs = load_scene(args.scene)
    rng = np.random.default_rng(cfg.seed)

    if cfg.decorate:
        prefabs = parse_prefabs(prefab_specs) if prefab_specs else DEFAULT_PREFABS
        added = decorate_roads(scene, cfg, rng, prefabs)
        logger.info("Decoration added %d objects", len(added))

    if args.requests is not None:
        requests = load_capture_requests(args.requests)
    else:
        requests = place_cameras_on_roads(scene, cfg, rng)

    report = generate_dataset(scene, requests, args.out, cfg)
    n_masks = sum(len(c.masks) for c in report.captures)
    print(f"Wrote {len(report.captures)} captures ({n_masks} masks) to {args.out}")
    if not report.ok:
        print(f"{len(report.failures)} captures failed")
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="roadcapture")
    parser.add_argument("--debug", action="store_true", help="Verbose logging (shows discarded small masks).")
    parser.add_argument("--log-file", type=Path, default=None)
    sub = parser.add_subparsers(dest="cmd", required=True)

    gen = sub.add_parser("generate", help="Place cameras along roads, render and write raw frames + object masks.")
    gen.add_argument("--scene", type=Path, required=True, help="Scene JSON (roadcapture.scene.v0).")
    gen.add_argument("--out", type=Path, required=True, help="Output root (Raw_image/, Binary_image/).")
    gen.add_argument("--config", type=Path, default=None, help="Generator config JSON (roadcapture.config.v0).")
    gen.add_argument(
        "--requests",
        type=Path,
        default=None,
        help="JSON Lines file of capture requests; replaces camera placement along roads.",
    )
    gen.add_argument("--width", type=int, default=None)
    gen.add_argument("--height", type=int, default=None)
    gen.add_argument("--fov", type=float, default=None, help="Vertical field of view (degrees).")
    gen.add_argument("--aspect", type=float, default=None, help="Width/height (default: width/height of the grid).")
    gen.add_argument("--far", type=float, default=None, help="Far clip / max ray distance.")
    gen.add_argument(
        "--threshold",
        type=int,
        default=None,
        help="Masks are kept only if their box spans more than this many pixels on both axes.",
    )
    gen.add_argument("--detect-tag", type=str, default=None, help="Tag marking objects that get masks.")
    gen.add_argument("--road-tag", type=str, default=None, help="Tag marking road objects.")
    gen.add_argument("--decorate", action="store_true", help="Add poles and prefab props along roads first.")
    gen.add_argument("--seed", type=int, default=None)
    gen.add_argument("--workers", type=int, default=None, help="Parallel capture processes.")

    val = sub.add_parser("validate-output", help="Check file layout, sizes and mask colors of an output root.")
    val.add_argument("out_root", type=Path)

    args = parser.parse_args(argv)
    setup_logging(log_file=args.log_file, debug=args.debug)

    if args.cmd == "generate":
        return _cmd_generate(args)

    if args.cmd == "validate-output":
        counts = validate_output(args.out_root)
        print(f"OK: {counts['raw']} raw frames, {counts['masks']} masks")
        return 0

    raise AssertionError(f"Unhandled cmd: {args.cmd}")
