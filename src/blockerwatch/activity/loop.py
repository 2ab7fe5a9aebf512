"""Watch loop that turns window activity into detection triggers."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from blockerwatch.activity.probe import WindowProbe
from blockerwatch.activity.tracker import ActivityTracker
from blockerwatch.domain.models import Blocker, TriggerKind
from blockerwatch.engine.detector import BlockerDetector

logger = logging.getLogger(__name__)


class WatchLoop:
    """Polls the focused window and runs detections.

    - A focus change triggers a ``window_change`` detection.
    - Every ``idle_check_interval`` seconds, if the developer has stayed on
      one window past the tracker's idle threshold, an ``idle_check``
      detection runs.
    - Every ``eviction_interval`` seconds, blockers older than
      ``retention_days`` are evicted.
    """

    def __init__(
        self,
        detector: BlockerDetector,
        probe: WindowProbe,
        tracker: ActivityTracker | None = None,
        poll_interval: float = 2.0,
        idle_check_interval: float = 15.0,
        eviction_interval: float = 6 * 3600.0,
        retention_days: float = 30,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._detector = detector
        self._probe = probe
        self._tracker = tracker or ActivityTracker(clock=clock)
        self._poll_interval = poll_interval
        self._idle_check_interval = idle_check_interval
        self._eviction_interval = eviction_interval
        self._retention_days = retention_days
        self._clock = clock
        self._last_idle_check = clock()
        self._last_eviction = clock()
        self._stopped = False
        self._detections = 0

    @property
    def tracker(self) -> ActivityTracker:
        return self._tracker

    @property
    def detections(self) -> int:
        return self._detections

    def stop(self) -> None:
        """Signal the watch loop to stop after the current tick."""
        self._stopped = True

    async def run(self) -> None:
        logger.info(
            "Watch loop started (poll %.1fs, idle check %.1fs)",
            self._poll_interval, self._idle_check_interval,
        )
        self._stopped = False
        while not self._stopped:
            await self.tick()
            await asyncio.sleep(self._poll_interval)
        logger.info("Watch loop stopped after %d detection(s)", self._detections)

    async def tick(self) -> list[Blocker]:
        """Run one polling step. Returns blockers created during it."""
        created: list[Blocker] = []
        now = self._clock()

        window = await self._probe.active_window()
        if window and self._tracker.update(window):
            logger.debug("Focus changed to %r", window)
            blocker = await self._trigger(TriggerKind.WINDOW_CHANGE)
            if blocker is not None:
                created.append(blocker)

        if now - self._last_idle_check >= self._idle_check_interval:
            self._last_idle_check = now
            if self._tracker.is_dwelling():
                blocker = await self._trigger(TriggerKind.IDLE_CHECK)
                if blocker is not None:
                    created.append(blocker)

        if now - self._last_eviction >= self._eviction_interval:
            self._last_eviction = now
            self._detector.evict_older_than(self._retention_days)

        return created

    async def _trigger(self, trigger: TriggerKind) -> Blocker | None:
        context = self._tracker.context(trigger)
        self._detections += 1
        blocker = await self._detector.detect(context)
        if blocker is not None:
            logger.info(
                "Blocker on %r (%s): %s",
                context.window_name, trigger.value, blocker.description,
            )
        return blocker
