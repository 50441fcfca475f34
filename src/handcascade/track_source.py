from __future__ import annotations

import platform
from typing import Optional

import cv2
import numpy as np

from .errors import DimensionMismatchError


class ArrayTrackSource:
    """Track source backed by an in-memory frame that callers replace with `update`."""

    def __init__(self, frame: np.ndarray) -> None:
        self._frame = frame
        self._height, self._width = frame.shape[:2]

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def update(self, frame: np.ndarray) -> None:
        if frame.shape[:2] != (self._height, self._width):
            raise DimensionMismatchError(
                f"Frame size changed from {self._width}x{self._height} to {frame.shape[1]}x{frame.shape[0]}."
            )
        self._frame = frame

    def read(self) -> np.ndarray:
        return self._frame


class VideoCaptureTrackSource:
    """
    Track source reading from a camera via `cv2.VideoCapture`.

    Every `read()` grabs a new frame. The requested size is best effort; the
    actual size is read back from the device once and then fixed.
    """

    def __init__(
        self,
        camera_index: int = 0,
        width: Optional[int] = None,
        height: Optional[int] = None,
        mirror: bool = False,
    ) -> None:
        if platform.system() == "Darwin":
            self._cap = cv2.VideoCapture(camera_index, cv2.CAP_AVFOUNDATION)
        else:
            self._cap = cv2.VideoCapture(camera_index)
        if not self._cap.isOpened():
            raise RuntimeError(
                f"Could not open camera index {camera_index}. "
                "On macOS: System Settings -> Privacy & Security -> Camera -> allow your terminal."
            )
        if width is not None:
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        if height is not None:
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)

        self._mirror = mirror
        self._last_frame: Optional[np.ndarray] = None
        try:
            first = self.read()
        except Exception:
            self._cap.release()
            raise
        self._height, self._width = first.shape[:2]

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def last_frame(self) -> Optional[np.ndarray]:
        """The frame returned by the latest `read()`."""
        return self._last_frame

    def read(self) -> np.ndarray:
        ok, frame = self._cap.read()
        if not ok:
            raise RuntimeError("Could not read frame from camera.")
        if self._mirror:
            frame = cv2.flip(frame, 1)
        self._last_frame = frame
        return frame

    def close(self) -> None:
        self._cap.release()

    def __enter__(self) -> "VideoCaptureTrackSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
