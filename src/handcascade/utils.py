from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

import numpy as np

from .errors import DegenerateGeometryError, DimensionMismatchError
from .types import Coords, Point2


def clamp_int(v: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, v))


def bbox_from_points(points: Iterable[Tuple[int, int]]) -> Tuple[int, int, int, int]:
    xs = []
    ys = []
    for x, y in points:
        xs.append(x)
        ys.append(y)
    if not xs:
        return (0, 0, 0, 0)
    return (min(xs), min(ys), max(xs), max(ys))


def _check_same_length(a: Sequence[float], b: Sequence[float]) -> None:
    if len(a) != len(b):
        raise DimensionMismatchError(f"Unequal length vectors: {len(a)} != {len(b)}")


def add_vectors(a: Sequence[float], b: Sequence[float]) -> Point2:
    _check_same_length(a, b)
    return [x + y for x, y in zip(a, b)]


def subtract_vectors(a: Sequence[float], b: Sequence[float]) -> Point2:
    """Computes a - b elementwise."""
    _check_same_length(a, b)
    return [x - y for x, y in zip(a, b)]


def multiply_vectors(a: Sequence[float], b: Sequence[float]) -> Point2:
    _check_same_length(a, b)
    return [x * y for x, y in zip(a, b)]


def divide_vectors(a: Sequence[float], b: Sequence[float]) -> Point2:
    _check_same_length(a, b)
    return [x / y for x, y in zip(a, b)]


def compute_l2_norm(a: Sequence[float]) -> float:
    return math.sqrt(sum(v * v for v in a))


def compute_distance_between_vectors(v1: Sequence[float], v2: Sequence[float]) -> float:
    """Returns |v1 - v2|_2."""
    return compute_l2_norm(subtract_vectors(v1, v2))


def normalize_vector(a: Sequence[float]) -> Point2:
    """
    Scale `a` to unit length.

    Raises DegenerateGeometryError for the zero vector, which has no direction.
    """
    norm = compute_l2_norm(a)
    if norm == 0.0:
        raise DegenerateGeometryError("Cannot normalize a zero-length vector.")
    return [v / norm for v in a]


def make_coords_absolute(coords: Iterable[Sequence[float]], width_px: int, height_px: int) -> Coords:
    """
    Convert relative coordinates ([0, 1]) to absolute pixel coordinates in the
    range [0, width - 1] and [0, height - 1].
    """
    return [[c[0] * (width_px - 1), c[1] * (height_px - 1)] for c in coords]


def make_coords_relative(coords: Iterable[Sequence[float]], width_px: int, height_px: int) -> Coords:
    """Inverse of `make_coords_absolute`."""
    return [[c[0] / (width_px - 1), c[1] / (height_px - 1)] for c in coords]


def compute_rotation_matrix_2d(center: Sequence[float], angle_degrees: float, scale: float) -> np.ndarray:
    """
    Build the 2 x 3 affine matrix that rotates around `center`.

    Same semantics as `cv2.getRotationMatrix2D`: a positive angle rotates
    counter-clockwise on screen (y axis pointing down).
    """
    angle = math.radians(angle_degrees)
    alpha = scale * math.cos(angle)
    beta = scale * math.sin(angle)
    cx, cy = float(center[0]), float(center[1])
    return np.array(
        [
            [alpha, beta, (1.0 - alpha) * cx - beta * cy],
            [-beta, alpha, beta * cx + (1.0 - alpha) * cy],
        ],
        dtype=np.float64,
    )


class AspectRatioAwareRotation:
    """
    Rotates relative coordinates of a frame whose width and height differ.

    Relative coordinates are not isotropic when width != height, so x is
    scaled by width / height before rotating and scaled back afterwards.
    A positive rotation is clockwise on screen.
    """

    def __init__(self, center: Sequence[float], rotation_in_radians: float, aspect_ratio: Sequence[float]) -> None:
        self._x_scale = float(aspect_ratio[0]) / float(aspect_ratio[1])
        self._center = (float(center[0]) * self._x_scale, float(center[1]))
        self._rotation_in_radians = float(rotation_in_radians)

    @property
    def rotation_in_radians(self) -> float:
        return self._rotation_in_radians

    def apply(self, coords: Iterable[Sequence[float]]) -> Coords:
        return self._rotate(coords, self._rotation_in_radians)

    def apply_reverse(self, coords: Iterable[Sequence[float]]) -> Coords:
        return self._rotate(coords, -self._rotation_in_radians)

    def _rotate(self, coords: Iterable[Sequence[float]], angle: float) -> Coords:
        cos_a = math.cos(angle)
        sin_a = math.sin(angle)
        cx, cy = self._center
        res: Coords = []
        for c in coords:
            dx = c[0] * self._x_scale - cx
            dy = c[1] - cy
            x = cx + cos_a * dx - sin_a * dy
            y = cy + sin_a * dx + cos_a * dy
            res.append([x / self._x_scale, y])
        return res


@dataclass(frozen=True)
class ExtremumCoords:
    min_x: Point2
    max_x: Point2
    min_y: Point2
    max_y: Point2


def compute_extremum_coords(coords: Sequence[Sequence[float]]) -> ExtremumCoords:
    """
    Return the points with minimal/maximal x and y.

    Ties go to the first occurrence.
    """
    if not coords:
        raise DegenerateGeometryError("Cannot compute extremum coordinates of an empty list.")
    min_x = max_x = min_y = max_y = coords[0]
    for c in coords[1:]:
        if c[0] < min_x[0]:
            min_x = c
        if c[0] > max_x[0]:
            max_x = c
        if c[1] < min_y[1]:
            min_y = c
        if c[1] > max_y[1]:
            max_y = c
    return ExtremumCoords(min_x=list(min_x), max_x=list(max_x), min_y=list(min_y), max_y=list(max_y))


def flip_coords_horizontally(coords: Iterable[Sequence[float]]) -> Coords:
    """[x, y] becomes [1 - x, y]."""
    return [[1.0 - c[0], c[1]] for c in coords]


def coords_outside_box(box: Sequence[Sequence[float]], coords: Iterable[Sequence[float]]) -> Coords:
    """
    Map coordinates that are relative to `box` ([top_left, bottom_right]) to
    the frame that contains the box.
    """
    (x0, y0), (x1, y1) = box[0], box[1]
    w = x1 - x0
    h = y1 - y0
    return [[x0 + c[0] * w, y0 + c[1] * h] for c in coords]


def coords_inside_box(box: Sequence[Sequence[float]], coords: Iterable[Sequence[float]]) -> Coords:
    """Inverse of `coords_outside_box`."""
    (x0, y0), (x1, y1) = box[0], box[1]
    w = x1 - x0
    h = y1 - y0
    if w == 0.0 or h == 0.0:
        raise DegenerateGeometryError(f"Box {box!r} has zero area.")
    return [[(c[0] - x0) / w, (c[1] - y0) / h] for c in coords]
