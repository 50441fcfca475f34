"""
Derive the crop/rotation window of the next frame from model outputs.

The box model localizes a hand in the full frame. The landmark model then
runs on an upright crop around the hand, and its output is used to place the
crop of the following frame.
"""

from __future__ import annotations

import dataclasses
import math
from typing import List, Sequence

from .errors import InvalidInputError
from .types import Coords, PreprocInfo
from .utils import (
    AspectRatioAwareRotation,
    add_vectors,
    compute_distance_between_vectors,
    compute_extremum_coords,
    divide_vectors,
    make_coords_absolute,
    multiply_vectors,
    normalize_vector,
    subtract_vectors,
)

NUM_BOX_COORDS = 6
NUM_LANDMARK_COORDS = 21

# Landmark model indices (model order) used as rotation reference points.
PALM_BOTTOM_INDEX = 20
PALM_TOP_INDEX = 5

# Landmark pairs whose pixel distances estimate the hand size.
LANDMARK_SLACK_PAIRS = (
    (20, 16),
    (20, 1),
    (20, 5),
    (20, 9),
    (20, 13),
    (13, 1),
)

# Preprocessing info that feeds the whole, unrotated frame to the box model.
BOX_PREPROC_INFO = PreprocInfo(
    top_left=[0.0, 0.0],
    bottom_right=[1.0, 1.0],
    rotation_center=[0.5, 0.5],
    rotation_in_radians=0.0,
    flip=False,
)


class SixPointRotationCalculation:
    """
    Rotation that makes the palm axis (palm bottom -> palm top) vertical.

    A positive value means the frame has to be rotated clockwise.
    """

    def __init__(self, palm_bottom: Sequence[float], palm_top: Sequence[float], aspect_ratio: Sequence[float]) -> None:
        max_x = float(aspect_ratio[0]) / float(aspect_ratio[1])
        self.palm_bottom = multiply_vectors(palm_bottom, [max_x, 1.0])
        self.palm_top = multiply_vectors(palm_top, [max_x, 1.0])

        # Origin is top left.
        self.palm_line = subtract_vectors(self.palm_top, self.palm_bottom)
        self.normalized_palm_line = normalize_vector(self.palm_line)
        # Orthogonal unit vector going from left to right across the palm.
        self.main_joint_line = [-self.normalized_palm_line[1], self.normalized_palm_line[0]]

        # Image coordinates have y pointing down; atan2 expects it pointing up.
        self.rotation_in_radians = math.atan2(-self.main_joint_line[1], self.main_joint_line[0])


def compute_preproc_info_from_box_coords(
    coords: Sequence[Sequence[float]], aspect_ratio: Sequence[float], slack: float
) -> PreprocInfo:
    """
    Compute the crop window for the landmark model from box model output.

    Args:
        coords: The 6 box model points. [0] and [1] are palm reference points,
            [2..5] are extremum candidates of the hand.
        aspect_ratio: [width, height] of the source frame.
        slack: Margin added around the hand, as a fraction of the distance
            between the two palm reference points.
    """
    if len(coords) != NUM_BOX_COORDS:
        raise InvalidInputError(f"Box model must return {NUM_BOX_COORDS} coordinates, got {len(coords)}.")

    rotation_in_radians = SixPointRotationCalculation(coords[0], coords[1], aspect_ratio).rotation_in_radians
    rotation_center = divide_vectors(add_vectors(coords[0], coords[1]), [2.0, 2.0])

    rot = AspectRatioAwareRotation(rotation_center, rotation_in_radians, aspect_ratio)
    rotated = rot.apply([coords[2], coords[3], coords[4], coords[5]])
    ec = compute_extremum_coords(rotated)

    top_left, bottom_right = _top_left_bottom_right_from_extremum_coords([ec.min_x, ec.max_x, ec.min_y, ec.max_y])

    abs_coords = make_coords_absolute(coords[:2], aspect_ratio[0], aspect_ratio[1])
    slack_px = compute_distance_between_vectors(abs_coords[0], abs_coords[1]) * slack
    top_left, bottom_right = _add_slack(top_left, bottom_right, aspect_ratio, slack_px)

    return PreprocInfo(
        top_left=top_left,
        bottom_right=bottom_right,
        rotation_center=rotation_center,
        rotation_in_radians=rotation_in_radians,
        flip=False,
    )


def compute_preproc_info_from_lan_coords(
    coords: Sequence[Sequence[float]], aspect_ratio: Sequence[float], slack: float
) -> PreprocInfo:
    """
    Same as `compute_preproc_info_from_box_coords` but for the 21 landmark
    model points (in global frame coordinates and model order).
    """
    if len(coords) != NUM_LANDMARK_COORDS:
        raise InvalidInputError(
            f"Landmark model must return {NUM_LANDMARK_COORDS} coordinates, got {len(coords)}."
        )

    palm_bottom = coords[PALM_BOTTOM_INDEX]
    palm_top = coords[PALM_TOP_INDEX]

    rotation_center = divide_vectors(add_vectors(palm_bottom, palm_top), [2.0, 2.0])
    rotation_in_radians = SixPointRotationCalculation(palm_bottom, palm_top, aspect_ratio).rotation_in_radians

    rot = AspectRatioAwareRotation(rotation_center, rotation_in_radians, aspect_ratio)
    ec = compute_extremum_coords(rot.apply(coords))

    top_left, bottom_right = _top_left_bottom_right_from_extremum_coords([ec.min_x, ec.max_x, ec.min_y, ec.max_y])

    abs_coords = make_coords_absolute(coords, aspect_ratio[0], aspect_ratio[1])
    max_distance = max(compute_distance_between_vectors(abs_coords[a], abs_coords[b]) for a, b in LANDMARK_SLACK_PAIRS)
    top_left, bottom_right = _add_slack(top_left, bottom_right, aspect_ratio, slack * max_distance)

    return PreprocInfo(
        top_left=top_left,
        bottom_right=bottom_right,
        rotation_center=rotation_center,
        rotation_in_radians=rotation_in_radians,
        flip=False,
    )


def square_preproc_info(preproc_info: PreprocInfo, width_px: int, height_px: int) -> PreprocInfo:
    """
    Grow the shorter side of the crop box so the box is square in pixels.

    Pad mode of the frame preprocessor crops this box. Model coordinates of a
    padded crop are relative to it, so map them back with the squared info.
    """
    p = preproc_info.ordered()
    width = width_px * (p.bottom_right[0] - p.top_left[0])
    height = height_px * (p.bottom_right[1] - p.top_left[1])
    half_pad = abs(width - height) / 2
    top_left = list(p.top_left)
    bottom_right = list(p.bottom_right)
    if width > height:
        top_left[1] -= half_pad / height_px
        bottom_right[1] += half_pad / height_px
    elif width < height:
        top_left[0] -= half_pad / width_px
        bottom_right[0] += half_pad / width_px
    return dataclasses.replace(p, top_left=top_left, bottom_right=bottom_right)


def _top_left_bottom_right_from_extremum_coords(extremum_coords: Coords) -> List[List[float]]:
    # extremum_coords is [min_x, max_x, min_y, max_y]
    top_left = [extremum_coords[0][0], extremum_coords[2][1]]
    bottom_right = [extremum_coords[1][0], extremum_coords[3][1]]
    return [top_left, bottom_right]


def _add_slack(
    top_left: Sequence[float], bottom_right: Sequence[float], aspect_ratio: Sequence[float], slack_px: float
) -> List[List[float]]:
    dx = slack_px / aspect_ratio[0]
    dy = slack_px / aspect_ratio[1]
    return [
        [top_left[0] - dx, top_left[1] - dy],
        [bottom_right[0] + dx, bottom_right[1] + dy],
    ]
