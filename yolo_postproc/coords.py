from typing import Tuple

import numpy as np

from .types import ImageSize, Rect


def scale_to_original(rect: Rect, original_size: ImageSize, model_size: ImageSize) -> Tuple[int, int, int, int]:
    """
    Map a model-space rect onto the original image, returns (x, y, w, h).

    Each axis is scaled by its own ratio (original / model), undoing the
    stretch applied in preprocessing, then truncated toward zero. Ratios and
    products are float32 so a product that rounds onto an integer truncates
    the same way for every caller.
    """

    x_ratio = np.float32(original_size.width) / np.float32(model_size.width)
    y_ratio = np.float32(original_size.height) / np.float32(model_size.height)
    return (
        int(np.float32(rect.x) * x_ratio),
        int(np.float32(rect.y) * y_ratio),
        int(np.float32(rect.width) * x_ratio),
        int(np.float32(rect.height) * y_ratio),
    )
