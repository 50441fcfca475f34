"""
Tests for cropping/rotating frames into model input.
"""
import math
import threading
import unittest

import numpy as np

from handcascade.errors import DimensionMismatchError
from handcascade.frame_preproc import FramePreprocessor, create_frame_preproc_cb
from handcascade.postproc import convert_landmark_coordinates_to_global_coordinates
from handcascade.preproc import BOX_PREPROC_INFO, square_preproc_info
from handcascade.track_source import ArrayTrackSource
from handcascade.types import ModelInputType, PreprocInfo


def info(tl, br, center=(0.5, 0.5), rotation=0.0, flip=False):
    return PreprocInfo(
        top_left=list(tl),
        bottom_right=list(br),
        rotation_center=list(center),
        rotation_in_radians=rotation,
        flip=flip,
    )


def apply(m, x, y):
    p = m @ np.array([x, y, 1.0])
    return p[0], p[1]


class TestTransformMatrix(unittest.TestCase):
    def test_full_frame_same_size_is_identity(self):
        fp = FramePreprocessor(100, 100, 101, 101)
        np.testing.assert_allclose(fp.compute_transform_matrix(BOX_PREPROC_INFO), np.eye(3), atol=1e-12)

    def test_box_corners_map_to_output_corners(self):
        fp = FramePreprocessor(200, 100, 64, 32)
        m = fp.compute_transform_matrix(info([0.25, 0.2], [0.75, 0.6]))

        x, y = apply(m, 50, 20)
        self.assertAlmostEqual(x, 0.0)
        self.assertAlmostEqual(y, 0.0)

        # Box size in pixels is (100 + 1) x (40 + 1).
        x, y = apply(m, 150, 60)
        self.assertAlmostEqual(x, 100 * 64 / 101)
        self.assertAlmostEqual(y, 40 * 32 / 41)

    def test_positive_rotation_turns_frame_clockwise(self):
        fp = FramePreprocessor(100, 100, 101, 101)
        m = fp.compute_transform_matrix(info([0, 0], [1, 1], rotation=math.pi / 2))
        # Right of the center ends up below the center.
        x, y = apply(m, 75, 50)
        self.assertAlmostEqual(x, 50.0)
        self.assertAlmostEqual(y, 75.0)

    def test_flip_mirrors_source_x(self):
        fp = FramePreprocessor(100, 100, 101, 101)
        m = fp.compute_transform_matrix(info([0, 0], [1, 1], flip=True))
        x, y = apply(m, 10, 20)
        self.assertAlmostEqual(x, 90.0)
        self.assertAlmostEqual(y, 20.0)


class TestPreprocess(unittest.TestCase):
    def test_identity_copies_frame(self):
        frame = np.random.default_rng(0).integers(0, 256, (100, 100, 3), dtype=np.uint8)
        fp = FramePreprocessor(100, 100, 101, 101)
        out = fp.preprocess(frame, BOX_PREPROC_INFO)
        self.assertEqual(out.shape, (101, 101, 3))
        self.assertEqual(out.dtype, np.uint8)
        np.testing.assert_array_equal(out[1:98, 1:98], frame[1:98, 1:98])
        # The extra row and column lie outside of the source.
        self.assertFalse(out[100].any())
        self.assertFalse(out[:, 100].any())

    def test_buffer_is_reused(self):
        frame = np.zeros((100, 100, 3), dtype=np.uint8)
        fp = FramePreprocessor(100, 100, 32, 32)
        self.assertIs(fp.preprocess(frame, BOX_PREPROC_INFO), fp.preprocess(frame, BOX_PREPROC_INFO))

    def test_area_outside_source_is_reset(self):
        frame = np.full((100, 100, 3), 200, dtype=np.uint8)
        fp = FramePreprocessor(100, 100, 101, 101)
        fp.preprocess(frame, BOX_PREPROC_INFO)

        out = fp.preprocess(frame, info([-0.5, -0.5], [0.5, 0.5]))
        self.assertFalse(out[:45, :45].any())
        self.assertFalse(out[:45].any())
        self.assertTrue((out[55:95, 55:95] == 200).all())

    def test_flip(self):
        frame = np.zeros((100, 100), dtype=np.uint8)
        frame[:, :50] = 255
        fp = FramePreprocessor(100, 100, 101, 101)
        out = fp.preprocess(frame, info([0, 0], [1, 1], flip=True))
        self.assertEqual(out.shape, (101, 101))
        self.assertTrue((out[10:90, 55:95] == 255).all())
        self.assertFalse(out[10:90, 5:45].any())

    def test_inverted_box_is_ordered(self):
        frame = np.random.default_rng(1).integers(0, 256, (80, 120, 3), dtype=np.uint8)
        fp = FramePreprocessor(120, 80, 40, 40)
        expected = fp.preprocess(frame, info([0.2, 0.1], [0.7, 0.9], rotation=0.3)).copy()
        actual = fp.preprocess(frame, info([0.7, 0.9], [0.2, 0.1], rotation=0.3))
        np.testing.assert_array_equal(actual, expected)

    def test_pad_wide_box(self):
        frame = np.full((100, 200, 3), 255, dtype=np.uint8)
        fp = FramePreprocessor(200, 100, 64, 64, pad=True)
        # 200 x 50 pixels; the square box adds 75 pixels above and below.
        out = fp.preprocess(frame, info([0, 0], [1, 0.5]))
        strip = int(round((1 - 50 / 200) / 2 * 64))
        self.assertEqual(strip, 24)
        self.assertFalse(out[:strip].any())
        self.assertFalse(out[64 - strip:].any())
        self.assertTrue((out[26:38, 2:60] == 255).all())

    def test_pad_tall_box(self):
        frame = np.full((200, 100, 3), 255, dtype=np.uint8)
        fp = FramePreprocessor(100, 200, 64, 64, pad=True)
        out = fp.preprocess(frame, info([0, 0], [0.5, 1]))
        strip = int(round((1 - 50 / 200) / 2 * 64))
        self.assertFalse(out[:, :strip].any())
        self.assertFalse(out[:, 64 - strip:].any())
        self.assertTrue((out[2:60, 26:38] == 255).all())

    def test_pad_coordinates_map_back_through_squared_box(self):
        # A bright dot at (100, 24) in a 200x100 frame.
        frame = np.zeros((100, 200, 3), dtype=np.uint8)
        frame[22:27, 98:103] = 255
        box = info([0.3, 0.2], [0.7, 0.4], center=(0.5, 0.3))
        fp = FramePreprocessor(200, 100, 64, 64, pad=True)

        out = fp.preprocess(frame, box).astype(np.float64)[..., 0]
        ys, xs = np.mgrid[0:64, 0:64]
        local = [(out * xs).sum() / out.sum() / 64, (out * ys).sum() / out.sum() / 64]

        x, y = convert_landmark_coordinates_to_global_coordinates(
            square_preproc_info(box, 200, 100), [200, 100], [local]
        )[0]
        self.assertAlmostEqual(x, 0.5, delta=0.01)
        self.assertAlmostEqual(y, 0.24, delta=0.01)

    def test_frame_size_mismatch(self):
        fp = FramePreprocessor(100, 100, 32, 32)
        with self.assertRaises(DimensionMismatchError):
            fp.preprocess(np.zeros((50, 100, 3), dtype=np.uint8), BOX_PREPROC_INFO)


class ThreadRecordingSource(ArrayTrackSource):
    read_thread = None

    def read(self):
        self.read_thread = threading.current_thread()
        return super().read()


class TestPreprocCb(unittest.IsolatedAsyncioTestCase):
    async def test_frame_is_read_off_the_event_loop(self):
        src = ThreadRecordingSource(np.zeros((40, 40, 3), dtype=np.uint8))
        cb = create_frame_preproc_cb(src.width, src.height, 16, 16)
        await cb(src, BOX_PREPROC_INFO)
        self.assertIsNotNone(src.read_thread)
        self.assertIsNot(src.read_thread, threading.current_thread())

    async def test_cb_returns_image_input(self):
        src = ArrayTrackSource(np.full((120, 160, 3), 7, dtype=np.uint8))
        cb = create_frame_preproc_cb(src.width, src.height, 32, 32)
        mi = await cb(src, BOX_PREPROC_INFO)
        self.assertEqual(mi.type, ModelInputType.IMAGE)
        self.assertEqual(mi.shape, (32, 32, 3))
        self.assertEqual(mi.data.dtype, np.uint8)
        self.assertTrue((mi.data[2:30, 2:30] == 7).all())


if __name__ == "__main__":
    unittest.main()
