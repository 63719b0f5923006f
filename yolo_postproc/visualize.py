from __future__ import annotations

from typing import Callable, Iterable, Optional, Tuple

import numpy as np

from .types import BoundingBox

# Successive classes step around the hue wheel by the golden ratio so
# neighbouring indices get well separated colours.
_HUE_STEP = 0.618033988749895


def _cv2():
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("The overlay needs OpenCV: `pip install opencv-python`.") from e
    return cv2


def class_color(class_index: int) -> Tuple[int, int, int]:
    """BGR colour for a class index, stable across runs."""

    cv2 = _cv2()
    hue = int((class_index * _HUE_STEP) % 1.0 * 180)
    hsv = np.array([[[hue, 220, 255]]], dtype=np.uint8)
    b, g, r = cv2.cvtColor(hsv, cv2.COLOR_HSV2BGR)[0, 0]
    return int(b), int(g), int(r)


def draw_detections(
    image_bgr: np.ndarray,
    boxes: Iterable[BoundingBox],
    *,
    label: Optional[Callable[[int], str]] = None,
    show_score: bool = True,
    thickness: int = 2,
) -> np.ndarray:
    """
    Return a copy of `image_bgr` with `boxes` outlined.

    `boxes` is anything yielding `BoundingBox`, typically the
    `DetectionResult` of `Detector.detect` on the same image. `label` maps a
    class index to text; pass `detector.class_name` to get model names.
    OpenCV clips shapes that fall outside the image.
    """

    cv2 = _cv2()
    if not isinstance(image_bgr, np.ndarray) or image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected a (H, W, 3) image, got {getattr(image_bgr, 'shape', None)}")

    canvas = image_bgr.copy()
    font = cv2.FONT_HERSHEY_SIMPLEX
    for box in boxes:
        color = class_color(box.class_index)
        right, bottom = box.x + box.width - 1, box.y + box.height - 1
        cv2.rectangle(canvas, (box.x, box.y), (right, bottom), color, thickness)

        text = label(box.class_index) if label is not None else str(box.class_index)
        if show_score:
            text = f"{text} {box.confidence:.2f}"
        (tw, th), base = cv2.getTextSize(text, font, 0.5, 1)
        # Tag sits inside the box's top-left corner.
        cv2.rectangle(canvas, (box.x, box.y), (box.x + tw + 2, box.y + th + base + 2), color, cv2.FILLED)
        cv2.putText(canvas, text, (box.x + 1, box.y + th + 1), font, 0.5, (0, 0, 0), 1, cv2.LINE_AA)

    return canvas
