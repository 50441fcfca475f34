from __future__ import annotations

import asyncio
import math
from typing import Optional


class FramePacer:
    """
    Fixed-rate frame clock for the tracking loop.

    `wait()` suspends until the next frame boundary, which bounds the loop to
    at most `fps` model invocations per second and gives other tasks on the
    event loop a chance to run. If the caller is already late the next
    boundary is the upcoming one; missed frames are not made up for.
    """

    def __init__(self, fps: float = 60.0) -> None:
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self.fps = fps
        self.frame_interval_s = 1.0 / fps
        self._next_frame_t: Optional[float] = None

    async def wait(self) -> None:
        now = asyncio.get_running_loop().time()
        if self._next_frame_t is None:
            # The first wait only yields.
            self._next_frame_t = now
        elif self._next_frame_t < now:
            missed = math.ceil((now - self._next_frame_t) / self.frame_interval_s)
            self._next_frame_t += missed * self.frame_interval_s
        delay = self._next_frame_t - now
        self._next_frame_t += self.frame_interval_s
        await asyncio.sleep(max(0.0, delay))

    def __call__(self):
        return self.wait()
