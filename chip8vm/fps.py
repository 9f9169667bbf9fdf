"""Achieved frame-rate estimator."""

import time
from typing import Callable


class FpsCounter:
    """Counts frames against running wall-clock time, excluding pauses."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.frame_count = 0
        self._last_time = clock()
        self._saved_elapsed = 0.0
        self._paused = False

    def inc(self) -> None:
        self.frame_count += 1

    def reset(self) -> None:
        self.frame_count = 0
        self._last_time = self._clock()
        self._saved_elapsed = 0.0

    def pause(self) -> None:
        if self._paused:
            return
        self._saved_elapsed += self._clock() - self._last_time
        self._paused = True

    def resume(self) -> None:
        if not self._paused:
            return
        self._last_time = self._clock()
        self._paused = False

    def get_fps(self) -> float:
        elapsed = self._saved_elapsed
        if not self._paused:
            elapsed += self._clock() - self._last_time
        if elapsed <= 0:
            return 0.0
        return self.frame_count / elapsed
