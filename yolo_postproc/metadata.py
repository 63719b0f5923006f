from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from .types import ImageSize, ModelVariant

LOGGER = logging.getLogger(__name__)

DEFAULT_IMAGE_SIZE = ImageSize(width=640, height=640)
DEFAULT_VARIANT_MARKER = "YOLO26"

_NAME_ENTRY = re.compile(r"""\s*([^:,]+?)\s*:\s*(?:'((?:[^'\\]|\\.)*)'|"((?:[^"\\]|\\.)*)")\s*(?:,|$)""")


def parse_image_size(text: str) -> Optional[ImageSize]:
    """
    Parse the exporter's `imgsz` value, e.g. "[640, 640]".

    The pair is (height, width): "[1280, 720]" is 720 wide and 1280 high.
    Returns None when the text is not a bracketed pair of positive integers.
    """

    if not isinstance(text, str):
        return None
    text = text.strip()
    if len(text) < 2 or text[0] != "[" or text[-1] != "]":
        return None

    parts = [p.strip() for p in text[1:-1].split(",")]
    if len(parts) != 2:
        return None
    try:
        height, width = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if width <= 0 or height <= 0:
        return None
    return ImageSize(width=width, height=height)


def parse_class_names(text: str) -> Optional[Dict[int, str]]:
    """
    Parse the exporter's `names` value, a Python dict repr such as
    "{0: 'person', 1: 'bicycle'}".

    Entries whose key is not an integer are skipped. Returns None when the
    text is not brace-delimited or contains something other than
    `key: 'value'` entries.
    """

    if not isinstance(text, str):
        return None
    text = text.strip()
    if len(text) < 2 or text[0] != "{" or text[-1] != "}":
        return None

    body = text[1:-1].strip()
    names: Dict[int, str] = {}
    pos = 0
    while pos < len(body):
        m = _NAME_ENTRY.match(body, pos)
        if m is None:
            return None
        key, single, double = m.group(1), m.group(2), m.group(3)
        pos = m.end()
        try:
            idx = int(key)
        except ValueError:
            continue
        names[idx] = single if single is not None else double
    return names


@dataclass(frozen=True)
class ModelMetadata:
    """
    Everything the detector needs to know about a loaded model.
    """

    image_size: ImageSize = DEFAULT_IMAGE_SIZE
    names: Mapping[int, str] = field(default_factory=lambda: MappingProxyType({}))
    variant: ModelVariant = ModelVariant.LEGACY
    version: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.names, MappingProxyType):
            object.__setattr__(self, "names", MappingProxyType(dict(self.names)))

    @property
    def num_classes(self) -> int:
        return len(self.names)


def read_model_metadata(raw: Mapping[str, str], variant_marker: str = DEFAULT_VARIANT_MARKER) -> ModelMetadata:
    """
    Build `ModelMetadata` from the model's custom key/value metadata.

    Malformed fields degrade to defaults (with a warning) instead of failing:
    the model still runs, only labels or input size fall back.
    """

    image_size = DEFAULT_IMAGE_SIZE
    if "imgsz" in raw:
        parsed_size = parse_image_size(raw["imgsz"])
        if parsed_size is None:
            LOGGER.warning("Unparseable imgsz %r, using %dx%d", raw["imgsz"], image_size.width, image_size.height)
        else:
            image_size = parsed_size
    else:
        LOGGER.warning("Model metadata has no imgsz, using %dx%d", image_size.width, image_size.height)

    names: Dict[int, str] = {}
    if "names" in raw:
        parsed_names = parse_class_names(raw["names"])
        if parsed_names is None:
            LOGGER.warning("Unparseable class names %r, labels will be numeric", raw["names"])
        else:
            names = parsed_names

    description = raw.get("description")
    variant = ModelVariant.LEGACY
    if description is not None and variant_marker in description:
        variant = ModelVariant.FIXED_COUNT

    return ModelMetadata(
        image_size=image_size,
        names=names,
        variant=variant,
        version=raw.get("version"),
        description=description,
    )
