from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Tuple


@dataclass(frozen=True)
class ImageSize:
    width: int
    height: int


class ModelVariant(str, Enum):
    """
    Output layout family of a loaded model.

    - LEGACY: (1, 4 + C, M) raw anchors, needs NMS
    - FIXED_COUNT: (1, N, 6) already suppressed by the model
    """

    LEGACY = "legacy"
    FIXED_COUNT = "fixed_count"


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle, top-left corner + size."""

    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height


@dataclass(frozen=True)
class CandidateBox:
    """
    Pre-NMS detection hypothesis in model input space.

    `position_index` is the anchor column (legacy layout) or the slot index
    (fixed-count layout). It is bookkeeping only and never used for geometry.
    """

    position_index: int
    class_index: int
    confidence: float
    bounds: Rect


@dataclass(frozen=True)
class BoundingBox:
    """
    Final detection in original image pixel coordinates.
    """

    class_index: int
    confidence: float
    x: int
    y: int
    width: int
    height: int

    def as_xyxy(self) -> Tuple[int, int, int, int]:
        return self.x, self.y, self.x + self.width, self.y + self.height


@dataclass
class DetectionResult:
    """
    Boxes for one detect call.

    `shape_mismatch` is True when the output tensor layout was not recognised
    for the model variant; `boxes` is then empty.
    """

    boxes: List[BoundingBox] = field(default_factory=list)
    shape_mismatch: bool = False

    def __iter__(self) -> Iterator[BoundingBox]:
        return iter(self.boxes)

    def __len__(self) -> int:
        return len(self.boxes)

    def __getitem__(self, index: int) -> BoundingBox:
        return self.boxes[index]
