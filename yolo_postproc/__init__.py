"""
YOLO detection post-processing: pixels in, boxes out.

Stretch-resizes an image into a planar normalized tensor, decodes the two
Ultralytics ONNX output layouts (raw (1, 4 + C, M) anchors and NMS-free
(1, N, 6) slots), runs per-class NMS and maps boxes back to original image
pixels. Core helpers depend on NumPy only; OpenCV is used for resizing and
drawing, ONNX Runtime for the bundled inference backend.
"""

from .types import BoundingBox, CandidateBox, DetectionResult, ImageSize, ModelVariant, Rect
from .metadata import ModelMetadata, parse_class_names, parse_image_size, read_model_metadata
from .preprocess import image_to_tensor, rgb24_to_tensor, stretch_resize
from .decode import UnsupportedOutputShape, decode_fixed_count, decode_legacy
from .nms import iou, nms
from .coords import scale_to_original
from .config import DetectorConfig, load_detector_config
from .runtime import Detector, load_detector
from .visualize import draw_detections

__all__ = [
    "BoundingBox",
    "CandidateBox",
    "DetectionResult",
    "ImageSize",
    "ModelVariant",
    "Rect",
    "ModelMetadata",
    "parse_class_names",
    "parse_image_size",
    "read_model_metadata",
    "image_to_tensor",
    "rgb24_to_tensor",
    "stretch_resize",
    "UnsupportedOutputShape",
    "decode_fixed_count",
    "decode_legacy",
    "iou",
    "nms",
    "scale_to_original",
    "DetectorConfig",
    "load_detector_config",
    "Detector",
    "load_detector",
    "draw_detections",
]
