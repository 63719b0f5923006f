from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import numpy as np

from .config import DetectorConfig
from .coords import scale_to_original
from .decode import UnsupportedOutputShape, decode_fixed_count, decode_legacy
from .metadata import ModelMetadata, read_model_metadata
from .nms import nms
from .preprocess import image_to_tensor
from .types import BoundingBox, CandidateBox, DetectionResult, ImageSize, ModelVariant

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]


class Detector:
    """
    Plug-and-play detector: stretch-resize -> inference -> decode -> NMS -> map back.

    `infer_fn` is the inference engine: it takes the (1, 3, H, W) float32
    blob and returns the raw output array. Errors it raises are passed to the
    caller untouched. Detection never mutates the detector, so one instance
    can serve repeated independent calls.
    """

    def __init__(
        self,
        infer_fn: Callable[[np.ndarray], np.ndarray],
        metadata: ModelMetadata,
        *,
        config: DetectorConfig = DetectorConfig(),
        backend: Optional[object] = None,
        backend_name: Optional[str] = None,
    ):
        self._infer_fn = infer_fn
        self.metadata = metadata
        self.config = config
        self.backend = backend
        self.backend_name = backend_name
        self._closed = False

    @property
    def image_size(self) -> ImageSize:
        return self.metadata.image_size

    @property
    def names(self):
        return self.metadata.names

    @property
    def variant(self) -> ModelVariant:
        return self.metadata.variant

    @property
    def closed(self) -> bool:
        return self._closed

    def class_name(self, class_index: int) -> str:
        return self.metadata.names.get(class_index, str(class_index))

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Detector has been closed.")

    def preprocess(self, image: np.ndarray) -> np.ndarray:
        return image_to_tensor(
            image,
            self.metadata.image_size,
            channel_order=self.config.channel_order,
            workers=self.config.preprocess_workers,
        )

    def _decode(self, output: np.ndarray) -> List[CandidateBox]:
        flat = np.ascontiguousarray(output, dtype=np.float32).reshape(-1)
        if self.metadata.variant is ModelVariant.FIXED_COUNT:
            return decode_fixed_count(flat, output.shape, self.config.conf_threshold)

        candidates = decode_legacy(flat, output.shape, self.metadata.num_classes, self.config.conf_threshold)
        return nms(candidates, self.config.iou_threshold)

    def detect_tensor(self, tensor: np.ndarray, original_size: ImageSize) -> DetectionResult:
        """
        Run inference on a prepared blob and return boxes in `original_size` pixels.
        """

        self._check_open()
        output = np.asarray(self._infer_fn(tensor))

        try:
            candidates = self._decode(output)
        except UnsupportedOutputShape as exc:
            LOGGER.warning("Skipping detections for this call: %s", exc)
            return DetectionResult(boxes=[], shape_mismatch=True)

        boxes: List[BoundingBox] = []
        for cand in candidates:
            x, y, w, h = scale_to_original(cand.bounds, original_size, self.metadata.image_size)
            if w <= 0 or h <= 0:
                continue
            boxes.append(
                BoundingBox(
                    class_index=cand.class_index,
                    confidence=cand.confidence,
                    x=x,
                    y=y,
                    width=w,
                    height=h,
                )
            )
        LOGGER.debug("%d candidates -> %d boxes", len(candidates), len(boxes))
        return DetectionResult(boxes=boxes)

    def detect(self, image: np.ndarray) -> DetectionResult:
        self._check_open()
        blob = self.preprocess(image)
        orig_h, orig_w = image.shape[:2]
        return self.detect_tensor(blob, ImageSize(width=orig_w, height=orig_h))

    def __call__(self, image: np.ndarray) -> List[BoundingBox]:
        return self.detect(image).boxes

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        close = getattr(self.backend, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> "Detector":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def load_detector(
    model_path: PathLike,
    *,
    config: Optional[DetectorConfig] = None,
    providers: Optional[Sequence[str]] = None,
    input_name: Optional[str] = None,
    output_name: Optional[str] = None,
) -> Detector:
    """
    Open an ONNX model and build a Detector from its embedded metadata.

    Typical usage:
        with load_detector("models/yolo11n.onnx") as det:
            boxes = det(cv2.imread("bus.jpg"))
    """

    from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

    cfg = config if config is not None else DetectorConfig()
    backend = OnnxRuntimeBackend(
        Path(model_path),
        OnnxRuntimeBackendConfig(providers=providers, input_name=input_name, output_name=output_name),
    )
    metadata = read_model_metadata(backend.metadata(), variant_marker=cfg.variant_marker)
    LOGGER.info(
        "Model %s: %s layout, input %dx%d, %d classes, version %s",
        Path(model_path).name,
        metadata.variant.value,
        metadata.image_size.width,
        metadata.image_size.height,
        metadata.num_classes,
        metadata.version or "unknown",
    )
    return Detector(backend.infer, metadata, config=cfg, backend=backend, backend_name="onnxruntime")
