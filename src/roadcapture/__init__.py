from roadcapture.core.masks import MaskAggregator, MaskRecord, filter_masks
from roadcapture.core.sampler import extract_masks, sample_frame
from roadcapture.core.scene import Box, GeometryQuery, Hit, Scene, SceneObject, Sphere
from roadcapture.meta import CaptureRequest, parse_capture_request
from roadcapture.sim.generate_dataset import generate_dataset, run_capture
from roadcapture.sim.output import OutputLayout, emit_capture, next_capture_index

__all__ = [
    "CaptureRequest",
    "parse_capture_request",
    "Box",
    "Sphere",
    "SceneObject",
    "Scene",
    "Hit",
    "GeometryQuery",
    "MaskAggregator",
    "MaskRecord",
    "filter_masks",
    "sample_frame",
    "extract_masks",
    "OutputLayout",
    "emit_capture",
    "next_capture_index",
    "run_capture",
    "generate_dataset",
]
