import unittest

import numpy as np

from yolo_postproc.decode import UnsupportedOutputShape, decode_fixed_count, decode_legacy
from yolo_postproc.types import Rect


def _legacy_output(boxes, scores) -> np.ndarray:
    """
    boxes: list of (cx, cy, w, h) per position, scores: (C, M) rows.
    Returns a (1, 4 + C, M) array.
    """
    box_rows = np.asarray(boxes, dtype=np.float32).T
    return np.vstack([box_rows, np.asarray(scores, dtype=np.float32)])[None, ...]


class TestDecodeFixedCount(unittest.TestCase):
    def test_thresholds_and_corner_form(self) -> None:
        p = np.array(
            [
                [
                    [10, 20, 30, 60, 0.9, 1],
                    [11, 21, 31, 41, 0.2, 3],
                ]
            ],
            dtype=np.float32,
        )
        cands = decode_fixed_count(p.reshape(-1), p.shape, 0.3)
        self.assertEqual(len(cands), 1)
        c = cands[0]
        self.assertEqual(c.class_index, 1)
        self.assertEqual(c.position_index, 0)
        self.assertAlmostEqual(c.confidence, 0.9, places=6)
        self.assertEqual(c.bounds, Rect(10.0, 20.0, 20.0, 40.0))

    def test_score_equal_to_threshold_dropped(self) -> None:
        p = np.array([[[0, 0, 10, 10, 0.5, 0]]], dtype=np.float32)
        self.assertEqual(decode_fixed_count(p.reshape(-1), p.shape, 0.5), [])

    def test_float32_score_at_threshold_dropped(self) -> None:
        # float32(0.3) is slightly above the float64 0.3; the tensor precision decides
        p = np.array([[[0, 0, 10, 10, np.float32(0.3), 0]]], dtype=np.float32)
        self.assertEqual(decode_fixed_count(p.reshape(-1), p.shape, 0.3), [])

    def test_class_id_truncated(self) -> None:
        p = np.array([[[0, 0, 10, 10, 0.8, 2.7]]], dtype=np.float32)
        self.assertEqual(decode_fixed_count(p.reshape(-1), p.shape, 0.5)[0].class_index, 2)

    def test_slot_order_kept(self) -> None:
        p = np.array([[[0, 0, 5, 5, 0.4, 0], [0, 0, 5, 5, 0.95, 1], [0, 0, 5, 5, 0.6, 2]]], dtype=np.float32)
        cands = decode_fixed_count(p.reshape(-1), p.shape, 0.3)
        self.assertEqual([c.position_index for c in cands], [0, 1, 2])

    def test_wrong_shape_rejected(self) -> None:
        for shape in [(1, 300, 7), (300, 6), (2, 300, 6), (1, 84, 8400, 1)]:
            with self.subTest(shape=shape):
                with self.assertRaises(UnsupportedOutputShape):
                    decode_fixed_count(np.zeros(int(np.prod(shape)), dtype=np.float32), shape, 0.3)

    def test_short_buffer_rejected(self) -> None:
        with self.assertRaises(UnsupportedOutputShape):
            decode_fixed_count(np.zeros(11, dtype=np.float32), (1, 2, 6), 0.3)


class TestDecodeLegacy(unittest.TestCase):
    def test_center_to_corner_and_strides(self) -> None:
        out = _legacy_output(
            boxes=[(50, 60, 10, 20), (55, 66, 12, 18), (0, 0, 4, 4)],
            scores=[
                [0.1, 0.7, 0.0],
                [0.9, 0.1, 0.0],
            ],
        )
        self.assertEqual(out.shape, (1, 6, 3))
        cands = decode_legacy(out.reshape(-1), out.shape, num_classes=2, conf_threshold=0.25)
        self.assertEqual(len(cands), 2)

        first, second = cands
        self.assertEqual((first.position_index, first.class_index), (0, 1))
        self.assertEqual(first.bounds, Rect(45.0, 50.0, 10.0, 20.0))
        self.assertAlmostEqual(first.confidence, 0.9, places=6)
        self.assertEqual((second.position_index, second.class_index), (1, 0))
        self.assertEqual(second.bounds, Rect(49.0, 57.0, 12.0, 18.0))

    def test_position_major_order(self) -> None:
        out = _legacy_output(
            boxes=[(10, 10, 4, 4), (20, 20, 4, 4)],
            scores=[[0.5, 0.5], [0.6, 0.6]],
        )
        cands = decode_legacy(out.reshape(-1), out.shape, num_classes=2, conf_threshold=0.3)
        self.assertEqual(
            [(c.position_index, c.class_index) for c in cands],
            [(0, 0), (0, 1), (1, 0), (1, 1)],
        )

    def test_zero_size_boxes_dropped(self) -> None:
        out = _legacy_output(
            boxes=[(10, 10, 0, 4), (10, 10, 4, 0), (10, 10, 4, 4)],
            scores=[[0.9, 0.9, 0.9]],
        )
        cands = decode_legacy(out.reshape(-1), out.shape, num_classes=1, conf_threshold=0.3)
        self.assertEqual([c.position_index for c in cands], [2])

    def test_threshold_is_strict(self) -> None:
        out = _legacy_output(boxes=[(10, 10, 4, 4)], scores=[[0.5]])
        self.assertEqual(decode_legacy(out.reshape(-1), out.shape, 1, 0.5), [])

    def test_float32_score_at_threshold_dropped(self) -> None:
        out = _legacy_output(boxes=[(10, 10, 4, 4)], scores=[[np.float32(0.3)]])
        self.assertEqual(decode_legacy(out.reshape(-1), out.shape, 1, 0.3), [])

    def test_both_layouts_agree_at_threshold(self) -> None:
        for score in (np.float32(0.3), np.nextafter(np.float32(0.3), np.float32(1.0))):
            with self.subTest(score=float(score)):
                fixed = np.array([[[6, 8, 14, 12, score, 0]]], dtype=np.float32)
                legacy = _legacy_output(boxes=[(10, 10, 8, 4)], scores=[[score]])
                kept_fixed = decode_fixed_count(fixed.reshape(-1), fixed.shape, 0.3)
                kept_legacy = decode_legacy(legacy.reshape(-1), legacy.shape, 1, 0.3)
                self.assertEqual(len(kept_fixed), len(kept_legacy))
                if kept_fixed:
                    self.assertEqual(kept_fixed[0].bounds, kept_legacy[0].bounds)

    def test_extra_score_rows_ignored(self) -> None:
        out = _legacy_output(boxes=[(10, 10, 4, 4)], scores=[[0.1], [0.2], [0.9]])
        self.assertEqual(decode_legacy(out.reshape(-1), out.shape, 2, 0.3), [])

    def test_class_count_inferred_without_names(self) -> None:
        out = _legacy_output(boxes=[(10, 10, 4, 4)], scores=[[0.1], [0.2], [0.9]])
        cands = decode_legacy(out.reshape(-1), out.shape, 0, 0.3)
        self.assertEqual([c.class_index for c in cands], [2])

    def test_too_few_rows_rejected(self) -> None:
        out = _legacy_output(boxes=[(10, 10, 4, 4)], scores=[[0.9]])
        with self.assertRaises(UnsupportedOutputShape):
            decode_legacy(out.reshape(-1), out.shape, 80, 0.3)

    def test_wrong_rank_rejected(self) -> None:
        with self.assertRaises(UnsupportedOutputShape):
            decode_legacy(np.zeros(84 * 10, dtype=np.float32), (84, 10), 80, 0.3)


if __name__ == "__main__":
    unittest.main()
