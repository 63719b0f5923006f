from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from .metadata import DEFAULT_VARIANT_MARKER


@dataclass(frozen=True)
class DetectorConfig:
    """
    Detector thresholds and preprocessing options.

    - conf_threshold: scores must be strictly above this to be kept
    - iou_threshold: same-class boxes overlapping more than this are suppressed
    - preprocess_workers: threads used to de-interleave rows (1 = sequential)
    - variant_marker: substring of the model description selecting the
      fixed-count output layout
    - channel_order: channel order of images passed to `Detector.detect`
    """

    conf_threshold: float = 0.3
    iou_threshold: float = 0.45
    preprocess_workers: int = 1
    variant_marker: str = DEFAULT_VARIANT_MARKER
    channel_order: str = "bgr"

    def __post_init__(self) -> None:
        if not 0.0 <= self.conf_threshold <= 1.0:
            raise ValueError("conf_threshold must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if self.preprocess_workers < 1:
            raise ValueError("preprocess_workers must be >= 1")
        if not self.variant_marker:
            raise ValueError("variant_marker must be a non-empty string")
        if self.channel_order not in ("bgr", "rgb"):
            raise ValueError("channel_order must be 'bgr' or 'rgb'")


def _optional_number(payload: Dict[str, Any], key: str, default: float) -> float:
    if key not in payload:
        return default
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _optional_int(payload: Dict[str, Any], key: str, default: int) -> int:
    if key not in payload:
        return default
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _optional_str(payload: Dict[str, Any], key: str, default: str) -> str:
    if key not in payload:
        return default
    value = payload[key]
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


def load_detector_config(path: Path) -> DetectorConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Detector config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid detector config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Detector config must be a JSON object")

    allowed = {
        "conf_threshold",
        "iou_threshold",
        "preprocess_workers",
        "variant_marker",
        "channel_order",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown detector config keys: {unknown}")

    defaults = DetectorConfig()
    return DetectorConfig(
        conf_threshold=_optional_number(payload, "conf_threshold", defaults.conf_threshold),
        iou_threshold=_optional_number(payload, "iou_threshold", defaults.iou_threshold),
        preprocess_workers=_optional_int(payload, "preprocess_workers", defaults.preprocess_workers),
        variant_marker=_optional_str(payload, "variant_marker", defaults.variant_marker),
        channel_order=_optional_str(payload, "channel_order", defaults.channel_order),
    )
