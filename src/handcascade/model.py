"""
Model execution with the OpenCV DNN module.

The tracking core only sees model callbacks (`ModelCb`). This module turns a
network file loadable by `cv2.dnn.readNet` (ONNX, TensorFlow, ...) into such
a callback. Networks must expose two outputs named `coordinates` (batch x N x 2,
range [-1, 1]) and `classes` (batch x K x 2, one Bernoulli distribution per
classifier).
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from concurrent.futures import Executor
from enum import Enum
from typing import Optional, Sequence, Tuple, Union

import cv2
import numpy as np

from .errors import ConfigurationError, InvalidInputError
from .types import ModelCb, ModelInput, ModelInputType, ModelResult, Size2

logger = logging.getLogger(__name__)

OUTPUT_NAMES: Tuple[str, str] = ("coordinates", "classes")


class DnnBackend(Enum):
    """Computational backend used to execute a network."""

    CPU = "CPU"
    OPENCL = "OPENCL"
    CUDA = "CUDA"


_BACKEND_TARGETS = {
    DnnBackend.CPU: (cv2.dnn.DNN_BACKEND_OPENCV, cv2.dnn.DNN_TARGET_CPU),
    DnnBackend.OPENCL: (cv2.dnn.DNN_BACKEND_OPENCV, cv2.dnn.DNN_TARGET_OPENCL),
    DnnBackend.CUDA: (cv2.dnn.DNN_BACKEND_CUDA, cv2.dnn.DNN_TARGET_CUDA),
}


def _as_backend(backend: Union[DnnBackend, str]) -> DnnBackend:
    if isinstance(backend, DnnBackend):
        return backend
    try:
        return DnnBackend(str(backend).upper())
    except ValueError as e:
        raise ConfigurationError(
            f"Backend {backend!r} is not supported. Available: {[b.value for b in DnnBackend]}"
        ) from e


def rescale_model_output(raw_coords: Sequence, raw_classes: Sequence) -> ModelResult:
    """
    Convert raw network output of a single batch item into a ModelResult.

    Coordinates are mapped from [-1, 1] to [0, 1]. Each classifier emits a
    Bernoulli distribution [p(false), p(true)]; only p(true) is kept.
    """
    coords = (np.asarray(raw_coords, dtype=np.float64).reshape(-1, 2) + 1.0) / 2.0
    classes = np.asarray(raw_classes, dtype=np.float64)
    if classes.ndim > 1:
        classes = classes.reshape(classes.shape[0], -1)[:, 1]
    return ModelResult(coordinates=coords.tolist(), classes=classes.tolist())


def tensor_from_model_input(model_input: ModelInput, channels_last: bool = True, swap_rb: bool = True) -> np.ndarray:
    """Build a float32 batch of one from either model input variant."""
    if model_input.type is ModelInputType.IMAGE:
        img = np.asarray(model_input.data)
    elif model_input.type is ModelInputType.TYPED_ARRAY:
        if model_input.shape is None:
            raise InvalidInputError("Typed array model input requires a shape.")
        img = np.asarray(model_input.data, dtype=np.uint8).reshape(model_input.shape)
    else:
        raise InvalidInputError(f"Unsupported model input type: {model_input.type!r}")

    if img.ndim == 2:
        img = img[:, :, np.newaxis]
    if swap_rb and img.shape[2] == 3:
        # Frames are BGR (OpenCV default); networks expect RGB.
        img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)

    tensor = img.astype(np.float32)
    if not channels_last:
        tensor = np.transpose(tensor, (2, 0, 1))
    return tensor[np.newaxis]


class DnnModel:
    """
    A box or landmark network executed by `cv2.dnn`.

    `input_size` is the (width, height) the network expects; frames are
    preprocessed to this size before inference.
    """

    def __init__(
        self,
        model_path: str,
        input_size: Size2,
        backend: Union[DnnBackend, str] = DnnBackend.CPU,
        channels_last: bool = True,
        swap_rb: bool = True,
    ) -> None:
        self.model_path = model_path
        self.input_size: Size2 = (int(input_size[0]), int(input_size[1]))
        self.backend = _as_backend(backend)
        self.channels_last = channels_last
        self.swap_rb = swap_rb

        if not os.path.exists(model_path):
            raise ConfigurationError(f"Model file not found: {model_path}")
        try:
            self._net = cv2.dnn.readNet(model_path)
        except cv2.error as e:
            raise ConfigurationError(f"Could not load model {model_path}: {e}") from e

        dnn_backend, dnn_target = _BACKEND_TARGETS[self.backend]
        self._net.setPreferableBackend(dnn_backend)
        self._net.setPreferableTarget(dnn_target)
        # A cv2.dnn.Net must not run two forward passes at once.
        self._lock = threading.Lock()
        logger.info("Loaded model %s (input %dx%d, backend %s)", model_path, *self.input_size, self.backend.value)

    def infer(self, model_input: ModelInput) -> ModelResult:
        tensor = tensor_from_model_input(model_input, self.channels_last, self.swap_rb)
        with self._lock:
            self._net.setInput(tensor)
            coords, classes = self._net.forward(list(OUTPUT_NAMES))
        # Drop the batch dimension.
        return rescale_model_output(coords[0], classes[0])


def create_model_cb(model: DnnModel, executor: Optional[Executor] = None) -> ModelCb:
    """
    Create a model callback that runs inference on an executor thread.

    The event loop stays responsive while the network executes; the tracking
    loop still awaits the result before it continues.
    """

    async def model_cb(model_input: ModelInput) -> ModelResult:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(executor, model.infer, model_input)

    return model_cb
