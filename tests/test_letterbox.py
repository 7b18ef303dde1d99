import unittest

import numpy as np

from safety_yolo.errors import EmptySource, InvalidDimensions
from safety_yolo.letterbox import ArrayImageSource, ImageSource, letterbox, preprocess

from helpers import RecordingSource

GRAY = 128 / 255.0


class TestPreprocess(unittest.TestCase):
    def test_tensor_shape_layout_and_padding(self) -> None:
        src = RecordingSource(640, 480, rgb=(255, 0, 51))
        prep = preprocess(src, target_size=1280)

        t = prep.tensor
        self.assertEqual(t.shape, (3, 1280, 1280))
        self.assertEqual(t.dtype, np.float32)
        self.assertTrue(t.flags["C_CONTIGUOUS"])
        self.assertEqual(src.draws, [(0, 160, 1280, 960)])

        # gray bands above and below, image in the middle
        self.assertTrue(np.allclose(t[:, :160, :], GRAY))
        self.assertTrue(np.allclose(t[:, 1120:, :], GRAY))
        self.assertTrue(np.allclose(t[0, 160:1120, :], 1.0))
        self.assertTrue(np.allclose(t[1, 160:1120, :], 0.0))
        self.assertTrue(np.allclose(t[2, 160:1120, :], 0.2))

        # planar: flat buffer is all R, then all G, then all B
        flat = t.reshape(-1)
        plane = 1280 * 1280
        self.assertAlmostEqual(float(flat[640 * 1280 + 5]), 1.0)
        self.assertAlmostEqual(float(flat[plane + 640 * 1280 + 5]), 0.0)
        self.assertAlmostEqual(float(flat[2 * plane + 640 * 1280 + 5]), 0.2, places=6)

        self.assertEqual(prep.geometry.offset_y, 160.0)
        self.assertGreaterEqual(prep.time_ms, 0.0)

    def test_values_normalized(self) -> None:
        rng = np.random.default_rng(1)
        img = rng.integers(0, 256, size=(37, 53, 3), dtype=np.uint8)
        prep = preprocess(ArrayImageSource(img), target_size=64)
        self.assertGreaterEqual(float(prep.tensor.min()), 0.0)
        self.assertLessEqual(float(prep.tensor.max()), 1.0)

    def test_bgr_array_is_converted_to_rgb(self) -> None:
        img = np.zeros((20, 40, 3), dtype=np.uint8)
        img[:, :] = (255, 0, 0)  # blue in BGR
        prep = preprocess(ArrayImageSource(img), target_size=80)
        # 40x20 -> 80x40, centered vertically at y=20
        self.assertTrue(np.allclose(prep.tensor[2, 20:60, :], 1.0))
        self.assertTrue(np.allclose(prep.tensor[0, 20:60, :], 0.0))
        self.assertTrue(np.allclose(prep.tensor[0, :20, :], GRAY))

    def test_rgb_array_kept_as_is(self) -> None:
        img = np.zeros((20, 20, 3), dtype=np.uint8)
        img[:, :] = (255, 0, 0)
        prep = preprocess(ArrayImageSource(img, channel_order="rgb"), target_size=20)
        self.assertTrue(np.allclose(prep.tensor[0], 1.0))
        self.assertTrue(np.allclose(prep.tensor[2], 0.0))

    def test_extreme_aspect_ratio_leaves_gray_canvas(self) -> None:
        img = np.full((3000, 1, 3), 200, dtype=np.uint8)
        prep = preprocess(ArrayImageSource(img), target_size=1280)
        self.assertEqual(prep.geometry.scaled_width, 0)
        self.assertEqual(prep.tensor.shape, (3, 1280, 1280))
        self.assertTrue(np.allclose(prep.tensor, GRAY))

    def test_zero_sized_draw_is_a_no_op(self) -> None:
        canvas = np.zeros((4, 4, 3), dtype=np.uint8)
        ArrayImageSource(np.full((3, 3, 3), 9, dtype=np.uint8)).draw_into(canvas, 2, 0, 0, 4)
        self.assertTrue(np.all(canvas == 0))

    def test_empty_source_rejected(self) -> None:
        with self.assertRaises(EmptySource):
            preprocess(RecordingSource(0, 480))
        with self.assertRaises(EmptySource):
            preprocess(ArrayImageSource(np.zeros((0, 10, 3), dtype=np.uint8)))

    def test_negative_source_rejected(self) -> None:
        with self.assertRaises(InvalidDimensions):
            preprocess(RecordingSource(-5, 480))

    def test_array_source_validates_shape(self) -> None:
        with self.assertRaises(ValueError):
            ArrayImageSource(np.zeros((10, 10), dtype=np.uint8))
        with self.assertRaises(ValueError):
            ArrayImageSource(np.zeros((10, 10, 3), dtype=np.uint8), channel_order="hsv")

    def test_sources_satisfy_protocol(self) -> None:
        self.assertIsInstance(RecordingSource(1, 1), ImageSource)
        self.assertIsInstance(ArrayImageSource(np.zeros((2, 2, 3), dtype=np.uint8)), ImageSource)


class TestLetterbox(unittest.TestCase):
    def test_pads_to_square_with_gray(self) -> None:
        img = np.full((480, 640, 3), 200, dtype=np.uint8)
        padded, geometry = letterbox(img, target_size=320)
        self.assertEqual(padded.shape, (320, 320, 3))
        self.assertEqual((geometry.scaled_width, geometry.scaled_height), (320, 240))
        self.assertTrue(np.all(padded[:40] == 128))
        self.assertTrue(np.all(padded[280:] == 128))
        self.assertTrue(np.all(padded[40:280] == 200))

    def test_extreme_aspect_ratio_returns_gray_canvas(self) -> None:
        img = np.full((3000, 1, 3), 200, dtype=np.uint8)
        padded, geometry = letterbox(img, target_size=1280)
        self.assertEqual(geometry.scaled_width, 0)
        self.assertEqual(padded.shape, (1280, 1280, 3))
        self.assertTrue(np.all(padded == 128))

    def test_odd_padding_goes_to_bottom(self) -> None:
        img = np.full((1, 3, 3), 7, dtype=np.uint8)
        padded, geometry = letterbox(img, target_size=4)
        self.assertEqual(padded.shape, (4, 4, 3))
        self.assertTrue(np.all(padded[1] == 7))
        self.assertTrue(np.all(padded[0] == 128))
        self.assertTrue(np.all(padded[2:] == 128))


if __name__ == "__main__":
    unittest.main()
