import unittest

import numpy as np

from yolo_postproc.coords import scale_to_original
from yolo_postproc.types import ImageSize, Rect


class TestScaleToOriginal(unittest.TestCase):
    def setUp(self) -> None:
        self.model = ImageSize(width=640, height=640)
        self.original = ImageSize(width=1280, height=720)

    def test_half_model_box(self) -> None:
        self.assertEqual(scale_to_original(Rect(0, 0, 320, 320), self.original, self.model), (0, 0, 640, 360))

    def test_offset_box(self) -> None:
        self.assertEqual(scale_to_original(Rect(160, 160, 320, 320), self.original, self.model), (320, 180, 640, 360))

    def test_truncates_instead_of_rounding(self) -> None:
        # 0.9 * 2 = 1.8 -> 1, 10.9 * 1.125 = 12.2625 -> 12
        self.assertEqual(scale_to_original(Rect(0.9, 10.9, 0.9, 10.9), self.original, self.model), (1, 12, 1, 12))

    def test_negative_values_truncate_toward_zero(self) -> None:
        x, y, _, _ = scale_to_original(Rect(-0.7, -0.7, 10, 10), self.original, self.model)
        self.assertEqual((x, y), (-1, 0))

    def test_products_rounded_in_float32(self) -> None:
        # float32(3.3333333) * 1.5 is 4.9999998... exactly, which float32 rounds to 5.0
        x = float(np.float32(3.3333333))
        original = ImageSize(width=960, height=640)
        self.assertEqual(scale_to_original(Rect(x, 0, x, 10), original, self.model), (5, 0, 5, 10))

    def test_identity_when_sizes_match(self) -> None:
        self.assertEqual(scale_to_original(Rect(12.5, 3, 40, 50.9), self.model, self.model), (12, 3, 40, 50))


if __name__ == "__main__":
    unittest.main()
