from __future__ import annotations

from typing import Optional, Sequence

from .types import Point2


class ExponentialMovingAverage:
    """`alpha` is the weight of the newest value; 1 disables smoothing."""

    def __init__(self, alpha: float) -> None:
        if not (0.0 <= alpha <= 1.0):
            raise ValueError(f"alpha must be in [0, 1], got {alpha}")
        self.alpha = alpha
        self._value: Optional[float] = None

    def add(self, value: float) -> float:
        if self._value is None:
            self._value = value
        else:
            self._value = self._value * (1 - self.alpha) + value * self.alpha
        return self._value

    def get(self) -> Optional[float]:
        return self._value

    def reset(self) -> None:
        self._value = None


class ExponentialCoordinateAverage:
    """Smooths [x, y] positions, e.g. a cursor driven by tracking results."""

    def __init__(self, alpha: float) -> None:
        self._x = ExponentialMovingAverage(alpha)
        self._y = ExponentialMovingAverage(alpha)

    def add(self, coord: Sequence[float]) -> Point2:
        return [self._x.add(coord[0]), self._y.add(coord[1])]

    def reset(self) -> None:
        self._x.reset()
        self._y.reset()
