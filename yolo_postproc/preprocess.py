from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple, Union

import numpy as np

from .types import ImageSize

BufferLike = Union[bytes, bytearray, memoryview, np.ndarray]


def stretch_resize(image: np.ndarray, size: ImageSize) -> np.ndarray:
    """
    Resize `image` to exactly `size`, scaling each axis independently.

    No letterbox: aspect ratio is not preserved and nothing is padded. The
    box mapping in `coords.scale_to_original` inverts exactly this stretch.
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for stretch_resize(). Install with `pip install opencv-python`.") from e

    h, w = image.shape[:2]
    if (w, h) == (size.width, size.height):
        return image.copy()
    return cv2.resize(image, (size.width, size.height), interpolation=cv2.INTER_LINEAR)


def _row_bands(height: int, workers: int) -> List[Tuple[int, int]]:
    step = -(-height // workers)
    return [(start, min(start + step, height)) for start in range(0, height, step)]


def rgb24_to_tensor(
    data: BufferLike,
    width: int,
    height: int,
    stride: Optional[int] = None,
    workers: int = 1,
) -> np.ndarray:
    """
    De-interleave an RGB24 buffer into a normalized planar (1, 3, H, W) tensor.

    Args:
        data: interleaved R, G, B bytes, one scan line every `stride` bytes
        width, height: image size in pixels
        stride: bytes per scan line (>= 3 * width); rows may be padded
        workers: split rows into this many bands converted on a thread pool

    Plane offsets in the flat output are 0 (R), H*W (G) and 2*H*W (B).
    """

    if width <= 0 or height <= 0:
        raise ValueError(f"width and height must be > 0, got {width}x{height}")
    row_bytes = width * 3
    if stride is None:
        stride = row_bytes
    if stride < row_bytes:
        raise ValueError(f"stride {stride} is smaller than one RGB24 row ({row_bytes} bytes)")
    if workers < 1:
        raise ValueError("workers must be >= 1")

    src = np.frombuffer(data, dtype=np.uint8) if not isinstance(data, np.ndarray) else data.reshape(-1)
    if src.dtype != np.uint8:
        raise TypeError(f"RGB24 buffer must be uint8, got {src.dtype}")
    needed = stride * (height - 1) + row_bytes
    if src.size < needed:
        raise ValueError(f"RGB24 buffer holds {src.size} bytes, need at least {needed}")

    plane = width * height
    out = np.empty(3 * plane, dtype=np.float32)
    scale = np.float32(255.0)

    def convert_rows(start: int, stop: int) -> None:
        for y in range(start, stop):
            row = src[y * stride : y * stride + row_bytes].astype(np.float32)
            dst = y * width
            out[dst : dst + width] = row[0::3] / scale
            out[plane + dst : plane + dst + width] = row[1::3] / scale
            out[2 * plane + dst : 2 * plane + dst + width] = row[2::3] / scale

    if workers == 1 or height == 1:
        convert_rows(0, height)
    else:
        bands = _row_bands(height, min(workers, height))
        with ThreadPoolExecutor(max_workers=len(bands)) as pool:
            # list() re-raises the first worker exception, if any
            list(pool.map(lambda band: convert_rows(*band), bands))

    return out.reshape(1, 3, height, width)


def image_to_tensor(
    image: np.ndarray,
    size: ImageSize,
    channel_order: str = "bgr",
    workers: int = 1,
) -> np.ndarray:
    """
    Full model input preparation: stretch to `size`, RGB, /255, planar NCHW.

    The pipeline expects OpenCV-style BGR images by default; pass
    `channel_order="rgb"` for RGB arrays. The input image is never modified.
    """

    if image is None or not hasattr(image, "shape"):
        raise TypeError("image must be a NumPy array.")
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image, 'shape', None)}")
    if image.dtype != np.uint8:
        raise ValueError(f"Expected uint8 image, got {image.dtype}")
    if channel_order not in ("bgr", "rgb"):
        raise ValueError(f"channel_order must be 'bgr' or 'rgb', got {channel_order!r}")

    resized = stretch_resize(image, size)
    if channel_order == "bgr":
        resized = resized[:, :, ::-1]
    rgb24 = np.ascontiguousarray(resized).reshape(-1)
    return rgb24_to_tensor(rgb24, size.width, size.height, workers=workers)
