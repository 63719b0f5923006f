from typing import Iterable, List

import numpy as np

from .types import CandidateBox, Rect

_ZERO = np.float32(0.0)


def iou(a: Rect, b: Rect) -> float:
    """
    Intersection over union of two rectangles, computed in float32.

    A rectangle with non-positive area has IoU 0 against anything, so
    degenerate boxes never suppress and are never suppressed.
    """

    ax, ay, aw, ah = (np.float32(v) for v in (a.x, a.y, a.width, a.height))
    bx, by, bw, bh = (np.float32(v) for v in (b.x, b.y, b.width, b.height))

    area_a = aw * ah
    if area_a <= _ZERO:
        return 0.0
    area_b = bw * bh
    if area_b <= _ZERO:
        return 0.0

    inter_w = max(_ZERO, min(ax + aw, bx + bw) - max(ax, bx))
    inter_h = max(_ZERO, min(ay + ah, by + bh) - max(ay, by))
    inter = inter_w * inter_h
    return float(inter / (area_a + area_b - inter))


def nms(candidates: Iterable[CandidateBox], iou_threshold: float) -> List[CandidateBox]:
    """
    Greedy per-class NMS.

    Candidates are visited by confidence, highest first; equal confidences
    keep their input order. A candidate is dropped when its IoU with an
    already kept box of the same class exceeds `iou_threshold`. Returns the
    kept boxes in the order they were accepted.
    """

    thr = float(np.float32(iou_threshold))
    # sorted() is stable, also with reverse=True
    ordered = sorted(candidates, key=lambda c: c.confidence, reverse=True)
    keep: List[CandidateBox] = []
    for cand in ordered:
        suppressed = any(
            kept.class_index == cand.class_index and iou(cand.bounds, kept.bounds) > thr
            for kept in keep
        )
        if not suppressed:
            keep.append(cand)
    return keep
