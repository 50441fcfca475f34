from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Resolution:
    width: float
    height: float


def scale_resolution_to_width(resolution: Resolution, width: float) -> Resolution:
    return Resolution(width=width, height=resolution.height / (resolution.width / width))


def scale_resolution_to_height(resolution: Resolution, height: float) -> Resolution:
    return Resolution(width=resolution.width / (resolution.height / height), height=height)


def scale_resolution_down(resolution: Resolution, upper_limit: Resolution) -> Resolution:
    """Keeping the aspect ratio, shrink `resolution` until it fits into `upper_limit`."""
    res = resolution
    if res.width <= upper_limit.width and res.height <= upper_limit.height:
        return res
    if res.width / upper_limit.width > res.height / upper_limit.height:
        return scale_resolution_to_width(res, upper_limit.width)
    return scale_resolution_to_height(res, upper_limit.height)


def scale_resolution_up(resolution: Resolution, lower_limit: Resolution) -> Resolution:
    """Keeping the aspect ratio, grow `resolution` until it covers `lower_limit`."""
    res = resolution
    if res.width >= lower_limit.width and res.height >= lower_limit.height:
        return res
    if res.width / lower_limit.width < res.height / lower_limit.height:
        return scale_resolution_to_width(res, lower_limit.width)
    return scale_resolution_to_height(res, lower_limit.height)


def scale_resolution_minimizing_euclidean_distance(resolution: Resolution, target: Resolution) -> Resolution:
    """
    Keeping the aspect ratio, scale `resolution` so that (width, height) is as
    close as possible to `target` in euclidean distance.
    """
    a, b = resolution.width, resolution.height
    y = (b * target.height + a * target.width) / (a * a + b * b)
    return Resolution(width=a * y, height=b * y)
