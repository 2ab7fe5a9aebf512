"""Tracks how long the developer has stayed on the focused window."""

from __future__ import annotations

import time
from typing import Callable

from blockerwatch.domain.models import DetectionContext, TriggerKind

DEFAULT_IDLE_THRESHOLD = 30.0


class ActivityTracker:
    """Current window and time spent on it.

    Args:
        idle_threshold: Seconds on one window after which the developer
            counts as dwelling (a candidate for an idle check).
        clock: Monotonic clock in seconds.
    """

    def __init__(
        self,
        idle_threshold: float = DEFAULT_IDLE_THRESHOLD,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._idle_threshold = idle_threshold
        self._clock = clock
        self._window = ""
        self._focus_start = clock()

    @property
    def current_window(self) -> str:
        return self._window

    def update(self, window: str) -> bool:
        """Record the focused window. Returns True if focus changed."""
        if window == self._window:
            return False
        self._window = window
        self._focus_start = self._clock()
        return True

    def activity_duration_ms(self) -> int:
        return max(0, int((self._clock() - self._focus_start) * 1000))

    def is_dwelling(self) -> bool:
        return bool(self._window) and self.activity_duration_ms() >= self._idle_threshold * 1000

    def context(self, trigger: TriggerKind) -> DetectionContext:
        return DetectionContext(
            window_name=self._window,
            activity_duration_ms=self.activity_duration_ms(),
            trigger=trigger,
        )
