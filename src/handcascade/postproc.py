from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Sequence

from .errors import InvalidInputError
from .types import Coords, PoseProbabilities, PreprocInfo, TrackResult
from .utils import (
    AspectRatioAwareRotation,
    compute_distance_between_vectors,
    coords_inside_box,
    coords_outside_box,
    flip_coords_horizontally,
    make_coords_absolute,
)

if TYPE_CHECKING:
    from .config import EngineConfig


# Empirically determined thresholds for the probabilities of a TrackResult.
# Rounding the probabilities works fine in general; these are slightly better.
RECOMMENDED_HAND_POSE_PROBABILITY_THRESHOLDS: Dict[str, float] = {
    "pinch": 0.2,
    "fist": 0.5,
    "is_hand_present": 0.5,
    "is_left_hand": 0.5,
}

# Maps model order to user friendly order: result[i] = coords[USER_FRIENDLY_COORD_ORDER[i]].
USER_FRIENDLY_COORD_ORDER = (
    17, 16, 18, 19,  # thumb
    1, 0, 2, 3,  # index
    5, 4, 6, 7,  # middle
    9, 8, 10, 11,  # ring
    13, 12, 14, 15,  # little
    20,  # base of hand
)

# Classifier output indices of the landmark model.
CLASS_PINCH = 0
CLASS_FIST = 1
CLASS_NO_HAND = 2
CLASS_LEFT_HAND = 3

# Pairs in user friendly order whose distances estimate the palm size.
PALM_SIZE_PAIRS = (
    (20, 0),
    (20, 4),
    (20, 8),
    (20, 12),
    (20, 16),
    (4, 16),
)


def convert_landmark_coordinates_to_global_coordinates(
    preproc_info: PreprocInfo, aspect_ratio: Sequence[float], coords: Sequence[Sequence[float]]
) -> Coords:
    """
    Convert landmark coordinates relative to the crop box into coordinates
    relative to the source frame.
    """
    p = preproc_info
    rot = AspectRatioAwareRotation(p.rotation_center, p.rotation_in_radians, aspect_ratio)
    coords = coords_outside_box([p.top_left, p.bottom_right], coords)
    return rot.apply_reverse(coords)


def assemble_track_result_from_coordinates_and_classes(
    coords: Coords, classes: Sequence[float]
) -> TrackResult:
    if len(classes) < 4:
        raise InvalidInputError(f"Landmark model must return at least 4 classes, got {len(classes)}.")
    return TrackResult(
        coordinates=coords,
        poses=PoseProbabilities(
            pinch_prob=float(classes[CLASS_PINCH]),
            fist_prob=float(classes[CLASS_FIST]),
        ),
        is_left_hand_prob=float(classes[CLASS_LEFT_HAND]),
        # The model predicts the absence of a hand.
        is_hand_present_prob=1.0 - float(classes[CLASS_NO_HAND]),
    )


def mirror_coordinates_horizontally(coords: Sequence[Sequence[float]]) -> Coords:
    """[x, y] becomes [1 - x, y]."""
    return flip_coords_horizontally(coords)


def apply_padding_to_coordinates(padding: float, coords: Sequence[Sequence[float]]) -> Coords:
    """
    Remove `padding` (a fraction of the frame) from every border.

    With a padding of 0.05 the point [0.05, 0.05] of the frame becomes
    [0, 0] and [0.95, 0.95] becomes [1, 1], so users can reach the borders
    of the output range without moving out of view.
    """
    d = padding
    return coords_inside_box([[d, d], [1 - d, 1 - d]], coords)


def make_coordinate_order_user_friendly(coords: Sequence[Sequence[float]]) -> Coords:
    if len(coords) != len(USER_FRIENDLY_COORD_ORDER):
        raise InvalidInputError(
            f"Expected {len(USER_FRIENDLY_COORD_ORDER)} coordinates to reorder, got {len(coords)}."
        )
    return [list(coords[i]) for i in USER_FRIENDLY_COORD_ORDER]


def apply_post_processing_to_coordinates(config: "EngineConfig", coords: Coords) -> Coords:
    if config.padding:
        coords = apply_padding_to_coordinates(config.padding, coords)
    if config.mirror_x:
        coords = mirror_coordinates_horizontally(coords)
    if config.user_friendly_coordinate_order:
        coords = make_coordinate_order_user_friendly(coords)
    return coords


def compute_approximate_palm_size_px(coords: Sequence[Sequence[float]], width_px: int, height_px: int) -> float:
    """Approximate palm size in pixels from result coordinates in user friendly order."""
    abs_coords = make_coords_absolute(coords, width_px, height_px)
    return max(compute_distance_between_vectors(abs_coords[a], abs_coords[b]) for a, b in PALM_SIZE_PAIRS)
