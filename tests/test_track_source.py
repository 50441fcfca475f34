import unittest
from unittest import mock

import numpy as np

from handcascade.errors import DimensionMismatchError
from handcascade.track_source import ArrayTrackSource, VideoCaptureTrackSource
from handcascade.types import TrackSource


class FakeCapture:
    def __init__(self, frames, opened=True):
        self._frames = list(frames)
        self._opened = opened
        self.props = {}
        self.released = False

    def isOpened(self):
        return self._opened

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def read(self):
        if not self._frames:
            return False, None
        return True, self._frames.pop(0)

    def release(self):
        self.released = True


class TestArrayTrackSource(unittest.TestCase):
    def test_size_and_read(self):
        frame = np.zeros((48, 64, 3), dtype=np.uint8)
        src = ArrayTrackSource(frame)
        self.assertIsInstance(src, TrackSource)
        self.assertEqual((src.width, src.height), (64, 48))
        self.assertIs(src.read(), frame)

    def test_update(self):
        src = ArrayTrackSource(np.zeros((48, 64, 3), dtype=np.uint8))
        frame = np.ones((48, 64, 3), dtype=np.uint8)
        src.update(frame)
        self.assertIs(src.read(), frame)
        with self.assertRaises(DimensionMismatchError):
            src.update(np.zeros((64, 48, 3), dtype=np.uint8))


class TestVideoCaptureTrackSource(unittest.TestCase):
    def _frame(self, value):
        frame = np.zeros((30, 40, 3), dtype=np.uint8)
        frame[:, :20] = value
        return frame

    def test_size_is_read_from_first_frame(self):
        cap = FakeCapture([self._frame(1), self._frame(2)])
        with mock.patch("handcascade.track_source.cv2.VideoCapture", return_value=cap):
            with VideoCaptureTrackSource(0, width=640, height=480) as src:
                self.assertEqual((src.width, src.height), (40, 30))
                self.assertEqual(len(cap.props), 2)
                frame = src.read()
                self.assertEqual(frame[0, 0, 0], 2)
                self.assertIs(src.last_frame, frame)
        self.assertTrue(cap.released)

    def test_mirror(self):
        cap = FakeCapture([self._frame(5)])
        with mock.patch("handcascade.track_source.cv2.VideoCapture", return_value=cap):
            src = VideoCaptureTrackSource(0, mirror=True)
        self.assertEqual(src.last_frame[0, 0, 0], 0)
        self.assertEqual(src.last_frame[0, 39, 0], 5)

    def test_camera_not_available(self):
        with mock.patch("handcascade.track_source.cv2.VideoCapture", return_value=FakeCapture([], opened=False)):
            with self.assertRaises(RuntimeError):
                VideoCaptureTrackSource(3)

    def test_capture_released_when_first_read_fails(self):
        cap = FakeCapture([], opened=True)
        with mock.patch("handcascade.track_source.cv2.VideoCapture", return_value=cap):
            with self.assertRaises(RuntimeError):
                VideoCaptureTrackSource(0)
        self.assertTrue(cap.released)

    def test_read_failure(self):
        cap = FakeCapture([self._frame(1)])
        with mock.patch("handcascade.track_source.cv2.VideoCapture", return_value=cap):
            src = VideoCaptureTrackSource(0)
        with self.assertRaises(RuntimeError):
            src.read()


if __name__ == "__main__":
    unittest.main()
