from __future__ import annotations

import asyncio
import math
from concurrent.futures import Executor
from typing import Optional

import cv2
import numpy as np

from .errors import DimensionMismatchError
from .preproc import square_preproc_info
from .types import ModelInput, ModelInputType, PreprocessCb, PreprocInfo, TrackSource
from .utils import compute_rotation_matrix_2d


def _translation(tx: float, ty: float) -> np.ndarray:
    return np.array([[1.0, 0.0, tx], [0.0, 1.0, ty], [0.0, 0.0, 1.0]], dtype=np.float64)


def _scaling(sx: float, sy: float) -> np.ndarray:
    return np.array([[sx, 0.0, 0.0], [0.0, sy, 0.0], [0.0, 0.0, 1.0]], dtype=np.float64)


class FramePreprocessor:
    """
    Crops, rotates and resizes source frames into a fixed size model input.

    The target buffer is owned by the instance and overwritten on every call,
    so the array returned by `preprocess` is only valid until the next call.
    Calls must not overlap: at most one `preprocess` in flight per instance.
    """

    def __init__(
        self,
        original_width: int,
        original_height: int,
        resize_width: int,
        resize_height: int,
        pad: bool = False,
    ) -> None:
        self.original_width = int(original_width)
        self.original_height = int(original_height)
        self.resize_width = int(resize_width)
        self.resize_height = int(resize_height)
        self.pad = pad
        self._buffer: Optional[np.ndarray] = None

    def compute_transform_matrix(self, preproc_info: PreprocInfo) -> np.ndarray:
        """
        Return the 3 x 3 matrix mapping source pixels to target pixels.

        Composition order: scale the box to the output size, move the box's
        top left to the origin, rotate around the rotation center, then the
        optional horizontal flip.
        """
        p = preproc_info
        w = self.original_width
        h = self.original_height

        box_width = (p.bottom_right[0] - p.top_left[0]) * w + 1
        box_height = (p.bottom_right[1] - p.top_left[1]) * h + 1
        m = _scaling(self.resize_width / box_width, self.resize_height / box_height)

        m = m @ _translation(-p.top_left[0] * w, -p.top_left[1] * h)

        center = (p.rotation_center[0] * w, p.rotation_center[1] * h)
        rot = np.vstack([compute_rotation_matrix_2d(center, -math.degrees(p.rotation_in_radians), 1.0), [0.0, 0.0, 1.0]])
        m = m @ rot

        if p.flip:
            m = m @ np.array([[-1.0, 0.0, w], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]], dtype=np.float64)
        return m

    def preprocess(self, frame: np.ndarray, preproc_info: PreprocInfo) -> np.ndarray:
        if frame.shape[:2] != (self.original_height, self.original_width):
            raise DimensionMismatchError(
                f"Frame has size {frame.shape[1]}x{frame.shape[0]}, "
                f"expected {self.original_width}x{self.original_height}."
            )
        trg = self._target_for(frame)
        info = preproc_info.ordered()

        if not self.pad:
            self._process_internal(frame, trg, info)
            return trg

        width = self.original_width * (info.bottom_right[0] - info.top_left[0])
        height = self.original_height * (info.bottom_right[1] - info.top_left[1])
        self._process_internal(frame, trg, square_preproc_info(info, self.original_width, self.original_height))

        # Replace the content of the padded strips with the padding value.
        rw, rh = self.resize_width, self.resize_height
        if width > height:
            strip = int(round((1 - height / width) / 2 * rh))
            trg[:strip] = 0
            trg[rh - strip:] = 0
        elif width < height:
            strip = int(round((1 - width / height) / 2 * rw))
            trg[:, :strip] = 0
            trg[:, rw - strip:] = 0
        return trg

    def _target_for(self, frame: np.ndarray) -> np.ndarray:
        shape = (self.resize_height, self.resize_width) + tuple(frame.shape[2:])
        if self._buffer is None or self._buffer.shape != shape or self._buffer.dtype != frame.dtype:
            self._buffer = np.zeros(shape, dtype=frame.dtype)
        return self._buffer

    def _process_internal(self, frame: np.ndarray, trg: np.ndarray, preproc_info: PreprocInfo) -> None:
        # Reset; pixels that map outside the source keep this value.
        trg.fill(0)
        m = self.compute_transform_matrix(preproc_info)
        out = cv2.warpAffine(
            frame,
            m[:2],
            (self.resize_width, self.resize_height),
            dst=trg,
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_TRANSPARENT,
        )
        if out is not trg:
            np.copyto(trg, out.reshape(trg.shape))


def create_frame_preproc_cb(
    original_width: int,
    original_height: int,
    resize_width: int,
    resize_height: int,
    pad: bool = False,
    executor: Optional[Executor] = None,
) -> PreprocessCb:
    """
    Create a preprocessing callback backed by a single `FramePreprocessor`.

    `track_source.read()` may block (a camera read does), so it runs on
    `executor`; warping stays on the event loop thread. With `pad` the model
    sees the box of `square_preproc_info`, and its coordinates must be mapped
    back with that info.
    """
    preproc = FramePreprocessor(original_width, original_height, resize_width, resize_height, pad)

    async def preprocess_cb(track_source: TrackSource, preproc_info: PreprocInfo) -> ModelInput:
        frame = await asyncio.get_running_loop().run_in_executor(executor, track_source.read)
        data = preproc.preprocess(frame, preproc_info)
        return ModelInput(type=ModelInputType.IMAGE, data=data, shape=data.shape)

    return preprocess_cb
