"""
Decoders for the two supported YOLO output layouts.

Both read the output as a flat float buffer plus its shape and address
values with explicit offsets:

- fixed-count (1, N, 6): [x1, y1, x2, y2, score, class_id] per slot, already
  suppressed by the exported model
- legacy (1, 4 + C, M): rows 0..3 hold cx, cy, w, h and rows 4.. hold one
  score per class, for M candidate positions (row stride M)

Thresholds are compared and box corners computed in float32, the tensor's
own precision.
"""

from __future__ import annotations

from typing import List, Sequence

import numpy as np

from .types import CandidateBox, Rect

FIXED_COUNT_FEATURES = 6
_TWO = np.float32(2.0)


class UnsupportedOutputShape(ValueError):
    """Output tensor shape does not match the model variant's layout."""


def _flat(buffer) -> np.ndarray:
    return np.asarray(buffer, dtype=np.float32).reshape(-1)


def _check_size(flat: np.ndarray, shape: Sequence[int]) -> None:
    expected = int(np.prod(shape))
    if flat.size < expected:
        raise UnsupportedOutputShape(f"Buffer holds {flat.size} values, shape {tuple(shape)} needs {expected}.")


def decode_fixed_count(buffer, shape: Sequence[int], conf_threshold: float) -> List[CandidateBox]:
    """
    Threshold the slots of a (1, N, 6) output.

    Slots with score <= conf_threshold are dropped. Boxes are already in
    corner form, class ids are truncated to int. Slot order is kept.
    """

    shape = tuple(int(d) for d in shape)
    if len(shape) != 3 or shape[0] != 1 or shape[2] != FIXED_COUNT_FEATURES:
        raise UnsupportedOutputShape(f"Expected (1, N, {FIXED_COUNT_FEATURES}) output, got {shape}.")

    flat = _flat(buffer)
    _check_size(flat, shape)

    thr = np.float32(conf_threshold)
    candidates: List[CandidateBox] = []
    for i in range(shape[1]):
        offset = i * FIXED_COUNT_FEATURES
        score = flat[offset + 4]
        if score <= thr:
            continue

        x1, y1, x2, y2 = flat[offset : offset + 4]
        candidates.append(
            CandidateBox(
                position_index=i,
                class_index=int(flat[offset + 5]),
                confidence=float(score),
                bounds=Rect(float(x1), float(y1), float(x2 - x1), float(y2 - y1)),
            )
        )
    return candidates


def decode_legacy(buffer, shape: Sequence[int], num_classes: int, conf_threshold: float) -> List[CandidateBox]:
    """
    Expand a (1, 4 + C, M) output into one candidate per (position, class)
    whose score is above `conf_threshold`.

    Candidates come out position-major, class-minor, which is the encounter
    order NMS uses to break confidence ties. Boxes with zero width or height
    are dropped. When `num_classes` is 0 every score row is used.
    """

    shape = tuple(int(d) for d in shape)
    if len(shape) != 3 or shape[0] != 1 or shape[1] < 5:
        raise UnsupportedOutputShape(f"Expected (1, 4 + C, M) output, got {shape}.")
    if num_classes <= 0:
        num_classes = shape[1] - 4
    if shape[1] < 4 + num_classes:
        raise UnsupportedOutputShape(f"Output {shape} has fewer than {num_classes} class rows.")

    flat = _flat(buffer)
    _check_size(flat, shape)

    stride = shape[2]
    # (C, M) view of the score rows; nonzero on the transpose walks p-major
    scores = flat[4 * stride : (4 + num_classes) * stride].reshape(num_classes, stride)
    positions, classes = np.nonzero(scores.T > np.float32(conf_threshold))

    candidates: List[CandidateBox] = []
    for p, c in zip(positions.tolist(), classes.tolist()):
        cx = flat[p]
        cy = flat[stride + p]
        w = flat[2 * stride + p]
        h = flat[3 * stride + p]
        if w == 0 or h == 0:
            continue
        candidates.append(
            CandidateBox(
                position_index=p,
                class_index=c,
                confidence=float(flat[(c + 4) * stride + p]),
                bounds=Rect(float(cx - w / _TWO), float(cy - h / _TWO), float(w), float(h)),
            )
        )
    return candidates
