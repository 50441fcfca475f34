from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Protocol, Tuple, runtime_checkable

import numpy as np


Point2 = List[float]
Coords = List[Point2]  # list of [x, y]
Size2 = Tuple[int, int]  # (width, height)


@dataclass(frozen=True)
class PreprocInfo:
    """
    How to carve a region of the source frame into model input space.

    All coordinates are relative ([0, 1]) to the source frame. `top_left` and
    `bottom_right` describe the crop box in the rotated frame, i.e. after the
    frame has been rotated by `rotation_in_radians` around `rotation_center`.
    A positive rotation is clockwise.
    """

    top_left: Point2
    bottom_right: Point2
    rotation_center: Point2
    rotation_in_radians: float
    flip: bool = False

    def ordered(self) -> "PreprocInfo":
        """Return a copy whose corners are ordered (min, max) along each axis."""
        x0, x1 = sorted((self.top_left[0], self.bottom_right[0]))
        y0, y1 = sorted((self.top_left[1], self.bottom_right[1]))
        return PreprocInfo(
            top_left=[x0, y0],
            bottom_right=[x1, y1],
            rotation_center=list(self.rotation_center),
            rotation_in_radians=self.rotation_in_radians,
            flip=self.flip,
        )


class ModelInputType(Enum):
    IMAGE = "IMAGE"
    TYPED_ARRAY = "TYPED_ARRAY"


@dataclass(frozen=True)
class ModelInput:
    """
    Input handed to a model callback.

    `IMAGE` carries an H x W x C uint8 ndarray. `TYPED_ARRAY` carries a flat
    uint8 buffer together with its `shape` (H, W, C).
    """

    type: ModelInputType
    data: np.ndarray
    shape: Optional[Tuple[int, ...]] = None


@dataclass(frozen=True)
class ModelResult:
    """Output of the box or landmark model."""

    coordinates: Coords  # relative, range [0, 1]
    classes: List[float]  # probabilities, range [0, 1]


@dataclass(frozen=True)
class PoseProbabilities:
    pinch_prob: float  # tip of index finger touches tip of thumb
    fist_prob: float


@dataclass(frozen=True)
class TrackResult:
    """
    Hand tracking result for one frame.

    `coordinates` holds 21 relative [x, y] pairs where [0, 0] is the top left
    and [1, 1] the bottom right pixel of the track source. In user friendly
    order the layout is:

    * [0-3]: thumb from base to tip
    * [4-7]: index finger from base to tip
    * [8-11]: middle finger from base to tip
    * [12-15]: ring finger from base to tip
    * [16-19]: little finger from base to tip
    * [20]: base of hand
    """

    coordinates: Coords
    is_left_hand_prob: float
    is_hand_present_prob: float
    poses: PoseProbabilities = field(default_factory=lambda: PoseProbabilities(0.0, 0.0))


@runtime_checkable
class TrackSource(Protocol):
    """A source of frames with a fixed size for the duration of a tracking session."""

    @property
    def width(self) -> int:
        ...

    @property
    def height(self) -> int:
        ...

    def read(self) -> np.ndarray:
        """Return the current BGR frame."""
        ...


ModelCb = Callable[[ModelInput], Awaitable[ModelResult]]
PreprocessCb = Callable[[TrackSource, PreprocInfo], Awaitable[ModelInput]]
TrackResultCb = Callable[[TrackResult], None]
FrameWaitCb = Callable[[], Awaitable[None]]
DownloadProgressCb = Callable[[int, int], None]
