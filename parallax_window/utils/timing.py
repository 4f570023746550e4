"""
Frame pacing and FPS measurement for the tracking loop.
"""

import time
from collections import deque
from typing import Callable, Optional


class FPSCounter:
    """Rolling-window frames-per-second estimate."""

    def __init__(self, window_size: int = 30, clock: Callable[[], float] = time.perf_counter):
        """
        Args:
            window_size: Number of frame intervals to average over
            clock: Monotonic time source (seconds)
        """
        self._clock = clock
        self._frame_times: deque = deque(maxlen=window_size)
        self._last_time: Optional[float] = None

    def tick(self) -> float:
        """
        Register a frame and return current FPS.
        """
        current_time = self._clock()

        if self._last_time is not None:
            self._frame_times.append(current_time - self._last_time)

        self._last_time = current_time

        return self.fps

    @property
    def fps(self) -> float:
        """Current FPS, or 0.0 if fewer than two frames recorded."""
        if not self._frame_times:
            return 0.0

        avg_frame_time = sum(self._frame_times) / len(self._frame_times)
        if avg_frame_time <= 0:
            return 0.0

        return 1.0 / avg_frame_time

    def reset(self):
        self._frame_times.clear()
        self._last_time = None


class FrameRateLimiter:
    """
    Sleep to hold a target frame rate.

    Call wait() at the end of each loop iteration.
    """

    def __init__(self, target_fps: float):
        self._min_frame_time = 1.0 / target_fps if target_fps > 0 else 0.0
        self._last_frame_time: Optional[float] = None

    def wait(self):
        current_time = time.perf_counter()

        if self._last_frame_time is not None:
            sleep_time = self._min_frame_time - (current_time - self._last_frame_time)
            if sleep_time > 0:
                time.sleep(sleep_time)
                current_time = time.perf_counter()

        self._last_frame_time = current_time

    def reset(self):
        self._last_frame_time = None
