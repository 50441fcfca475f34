"""
The tracking loop.

While no hand is tracked (SEEKING) the box model localizes a hand in the
whole frame. Afterwards (TRACKING) every tick runs the landmark model on an
upright crop around the hand and derives the crop of the next tick from the
landmark output. When the landmark model reports that no hand is present
the loop falls back to SEEKING.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor
from enum import Enum
from typing import Any, Mapping, Optional, Union

from .config import EngineConfig, resolve_engine_config
from .errors import ConfigurationError, DegenerateGeometryError
from .frame_preproc import create_frame_preproc_cb
from .model import DnnModel, create_model_cb
from .pacing import FramePacer
from .postproc import (
    apply_post_processing_to_coordinates,
    assemble_track_result_from_coordinates_and_classes,
    convert_landmark_coordinates_to_global_coordinates,
)
from .preproc import BOX_PREPROC_INFO, compute_preproc_info_from_box_coords, compute_preproc_info_from_lan_coords
from .types import FrameWaitCb, ModelCb, PreprocessCb, PreprocInfo, TrackResult, TrackResultCb, TrackSource

logger = logging.getLogger(__name__)

ConfigLike = Union[None, Mapping[str, Any], EngineConfig]


class TrackingState(Enum):
    SEEKING = "SEEKING"
    TRACKING = "TRACKING"


class Engine:
    """
    Single hand tracking state machine.

    Ticks never overlap: every stage of a tick is awaited before the next one
    starts. `frame_wait` is awaited once before each model invocation.
    """

    def __init__(
        self,
        config: ConfigLike,
        track_source: TrackSource,
        preproc_cb: PreprocessCb,
        box_cb: ModelCb,
        lan_cb: ModelCb,
        result_cb: TrackResultCb,
        frame_wait: Optional[FrameWaitCb] = None,
    ) -> None:
        self.config = resolve_engine_config(config)
        self.track_source = track_source
        self._aspect_ratio = [track_source.width, track_source.height]
        self._preproc_cb = preproc_cb
        self._box_cb = box_cb
        self._lan_cb = lan_cb
        self._result_cb = result_cb
        self._frame_wait: FrameWaitCb = frame_wait if frame_wait is not None else FramePacer().wait
        self._preproc_info: Optional[PreprocInfo] = None
        self._stopped = False

    @property
    def state(self) -> TrackingState:
        return TrackingState.SEEKING if self._preproc_info is None else TrackingState.TRACKING

    @property
    def preproc_info(self) -> Optional[PreprocInfo]:
        """Crop window that the next landmark model invocation will use."""
        return self._preproc_info

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> None:
        self._stopped = True

    async def tick(self) -> Optional[TrackResult]:
        """
        Run one tick. Returns the emitted result, or None if the box model
        produced no usable crop window.
        """
        if self._preproc_info is None:
            await self._frame_wait()
            box_input = await self._preproc_cb(self.track_source, BOX_PREPROC_INFO)
            box_res = await self._box_cb(box_input)
            try:
                self._preproc_info = compute_preproc_info_from_box_coords(
                    box_res.coordinates, self._aspect_ratio, self.config.box_slack
                )
            except DegenerateGeometryError as e:
                logger.debug("Box model output unusable (%s), seeking again", e)
                return None
            logger.debug("Box model located hand, tracking")

        await self._frame_wait()
        lan_input = await self._preproc_cb(self.track_source, self._preproc_info)
        lan_res = await self._lan_cb(lan_input)

        coords = convert_landmark_coordinates_to_global_coordinates(
            self._preproc_info, self._aspect_ratio, lan_res.coordinates
        )
        try:
            self._preproc_info = compute_preproc_info_from_lan_coords(coords, self._aspect_ratio, self.config.box_slack)
        except DegenerateGeometryError as e:
            logger.debug("Landmark output unusable for next crop (%s)", e)
            self._preproc_info = None

        coords = apply_post_processing_to_coordinates(self.config, coords)
        result = assemble_track_result_from_coordinates_and_classes(coords, lan_res.classes)
        self._result_cb(result)

        if result.is_hand_present_prob < self.config.min_hand_presence_probability_threshold:
            # Let the box model look for a hand again.
            if self._preproc_info is not None:
                logger.debug("Hand lost (presence %.3f), seeking", result.is_hand_present_prob)
            self._preproc_info = None
        return result

    async def run(self) -> None:
        """Run ticks until `stop()` is observed at a tick boundary."""
        logger.info("Tracking loop started (%dx%d)", *self._aspect_ratio)
        while not self._stopped:
            await self.tick()
        logger.info("Tracking loop stopped")


class EngineHandle:
    """
    Handle of a running engine.

    Calling the handle (or `stop()`) requests the loop to stop; it is safe to
    call multiple times.
    """

    def __init__(self, engine: Engine, task: "asyncio.Task[None]") -> None:
        self.engine = engine
        self.task = task

    def stop(self) -> None:
        self.engine.stop()

    def __call__(self) -> None:
        self.stop()

    async def wait(self) -> None:
        """Wait until the loop has exited; re-raises errors from the loop."""
        await self.task


async def start_engine(
    config: ConfigLike,
    track_source: TrackSource,
    preproc_cb: PreprocessCb,
    box_cb: ModelCb,
    lan_cb: ModelCb,
    result_cb: TrackResultCb,
    frame_wait: Optional[FrameWaitCb] = None,
) -> EngineHandle:
    """
    Start the tracking loop on the running event loop.

    Args:
        config: Engine configuration, merged over `DEFAULT_ENGINE_CONFIG`.
        track_source: The frame source to analyze.
        preproc_cb: Transforms the track source (rotation/crop/resize).
        box_cb: Runs the box model.
        lan_cb: Runs the landmark model.
        result_cb: Called with every tracking result, possibly at display
            refresh rate. It must return quickly.
        frame_wait: Awaited once before every model invocation. Defaults to a
            60 fps `FramePacer`.

    Returns:
        A handle that stops the loop when called.

    Raises:
        ConfigurationError: if the configuration is invalid. Nothing is started.
    """
    engine = Engine(config, track_source, preproc_cb, box_cb, lan_cb, result_cb, frame_wait)
    task = asyncio.get_running_loop().create_task(engine.run())
    return EngineHandle(engine, task)


async def start_dnn_engine(
    engine_config: ConfigLike,
    box_model: DnnModel,
    lan_model: DnnModel,
    track_source: TrackSource,
    result_cb: TrackResultCb,
    frame_wait: Optional[FrameWaitCb] = None,
    executor: Optional[Executor] = None,
) -> EngineHandle:
    """
    Start the tracking loop with two `cv2.dnn` models.

    Frames are cropped without pad mode so landmarks map back through the
    same `PreprocInfo` the frame preprocessor used.
    """
    if box_model.input_size != lan_model.input_size:
        raise ConfigurationError(
            "Box and landmark model must have the same input size, got "
            f"{box_model.input_size} and {lan_model.input_size}."
        )
    resize_width, resize_height = box_model.input_size
    preproc_cb = create_frame_preproc_cb(
        track_source.width, track_source.height, resize_width, resize_height, executor=executor
    )
    return await start_engine(
        engine_config,
        track_source,
        preproc_cb,
        create_model_cb(box_model, executor),
        create_model_cb(lan_model, executor),
        result_cb,
        frame_wait,
    )
