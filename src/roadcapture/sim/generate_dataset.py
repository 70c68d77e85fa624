from __future__ import annotations

import json
import logging
from concurrent.futures import Future, ProcessPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from roadcapture.config import GeneratorConfig
from roadcapture.core.sampler import extract_masks
from roadcapture.core.scene import Scene
from roadcapture.meta import CaptureRequest, capture_request_to_dict
from roadcapture.sim.output import CaptureIndexAllocator, CaptureResult, CaptureWriteError, OutputLayout, emit_capture
from roadcapture.sim.render import render_frame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptureFailure:
    index: int
    error: str


@dataclass
class DatasetReport:
    captures: list[CaptureResult] = field(default_factory=list)
    failures: list[CaptureFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def run_capture(
    scene: Scene,
    req: CaptureRequest,
    layout: OutputLayout,
    index: int,
    min_extent_px: int,
    detect_tag: str,
) -> CaptureResult:
    """
    One capture: render the frame, then sweep the pixel grid for masks, then write both.
    The sweep only starts once the frame is complete.
    """
    frame = render_frame(scene, req)
    records = extract_masks(scene, req, detect_tag)
    return emit_capture(layout, index, frame, records, min_extent_px)


def _manifest_entry(layout: OutputLayout, req: CaptureRequest, result: CaptureResult) -> dict[str, Any]:
    return {
        "index": result.index,
        "raw": result.raw_path.relative_to(layout.root).as_posix(),
        "request": capture_request_to_dict(req),
        "masks": [
            {
                "object_id": m.object_id,
                "name": m.name,
                "file": m.path.relative_to(layout.root).as_posix(),
                "bbox": {"min_x": m.bbox[0], "max_x": m.bbox[1], "min_y": m.bbox[2], "max_y": m.bbox[3]},
            }
            for m in result.masks
        ],
        "discarded": list(result.discarded),
    }


def generate_dataset(
    scene: Scene,
    requests: Iterable[CaptureRequest],
    out_root: Path,
    cfg: GeneratorConfig,
) -> DatasetReport:
    """
    Captures every request into out_root. Indices follow request order.

    A write failure only fails its own capture; it is logged and reported.
    """
    layout = OutputLayout(root=Path(out_root))
    layout.root.mkdir(parents=True, exist_ok=True)
    allocator = CaptureIndexAllocator(layout)
    report = DatasetReport()

    reqs = list(requests)
    if not reqs:
        logger.warning("No capture requests; nothing to do")
        return report

    manifest = layout.manifest_path.open("a", encoding="utf-8")
    try:
        if cfg.workers <= 1:
            for req in reqs:
                index = allocator.allocate()
                try:
                    result = run_capture(scene, req, layout, index, cfg.min_extent_px, cfg.detect_tag)
                except CaptureWriteError as e:
                    _record_failure(report, index, e)
                    continue
                _record_success(report, manifest, layout, req, result)
        else:
            with ProcessPoolExecutor(max_workers=cfg.workers) as pool:
                jobs: list[tuple[int, CaptureRequest, Future[CaptureResult]]] = []
                for req in reqs:
                    # Reserve the index up front: provisioning order decides numbering.
                    index = allocator.allocate()
                    fut = pool.submit(run_capture, scene, req, layout, index, cfg.min_extent_px, cfg.detect_tag)
                    jobs.append((index, req, fut))
                for index, req, fut in jobs:
                    try:
                        result = fut.result()
                    except CaptureWriteError as e:
                        _record_failure(report, index, e)
                        continue
                    _record_success(report, manifest, layout, req, result)
    finally:
        manifest.close()
    return report


def _record_success(
    report: DatasetReport, manifest: Any, layout: OutputLayout, req: CaptureRequest, result: CaptureResult
) -> None:
    manifest.write(json.dumps(_manifest_entry(layout, req, result), sort_keys=True) + "\n")
    manifest.flush()
    report.captures.append(result)


def _record_failure(report: DatasetReport, index: int, err: CaptureWriteError) -> None:
    logger.error("Capture %d failed: %s", index, err)
    report.failures.append(CaptureFailure(index=index, error=str(err)))
