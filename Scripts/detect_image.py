from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

import cv2

from yolo_postproc import DetectorConfig, draw_detections, load_detector, load_detector_config

LOGGER = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a YOLO ONNX model on one image and print the boxes.")
    parser.add_argument("--model", required=True, help="Path to the .onnx model")
    parser.add_argument("--image", required=True, help="Path to the input image")
    parser.add_argument("--config", default=None, help="Detector config JSON")
    parser.add_argument("--conf", type=float, default=None, help="Confidence threshold")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS")
    parser.add_argument("--workers", type=int, default=None, help="Preprocessing threads")
    parser.add_argument("--providers", nargs="*", default=None, help="ONNX Runtime execution providers")
    parser.add_argument("--output", default=None, help="Write an annotated copy of the image here")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def setup_logging(level: str) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    logging.basicConfig(level=getattr(logging, level), handlers=[handler])


def resolve_config(args: argparse.Namespace) -> DetectorConfig:
    cfg = load_detector_config(Path(args.config)) if args.config else DetectorConfig()
    overrides = {}
    if args.conf is not None:
        overrides["conf_threshold"] = args.conf
    if args.iou is not None:
        overrides["iou_threshold"] = args.iou
    if args.workers is not None:
        overrides["preprocess_workers"] = args.workers
    return replace(cfg, **overrides) if overrides else cfg


def read_image(path: str):
    img = cv2.imread(path)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {path}")
    return img


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)
    setup_logging(args.log_level)
    cfg = resolve_config(args)

    image = read_image(args.image)
    with load_detector(args.model, config=cfg, providers=args.providers) as detector:
        result = detector.detect(image)
        if result.shape_mismatch:
            LOGGER.error("Model output layout not recognised for %s models", detector.variant.value)
            return 1

        for box in result:
            print(
                f"{detector.class_name(box.class_index)}\t{box.confidence:.3f}\t"
                f"{box.x}\t{box.y}\t{box.width}\t{box.height}"
            )
        LOGGER.info("%d detections", len(result))

        if args.output:
            vis = draw_detections(image, result, label=detector.class_name)
            if not cv2.imwrite(args.output, vis):
                raise OSError(f"Could not write image to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
