"""Screen capture implementation using mss.

Grabs the configured monitor, downscales it to a thumbnail, and
PNG-encodes it in memory.
"""

from __future__ import annotations

import asyncio
import logging

import mss
from mss.exception import ScreenShotError
from PIL import Image

from blockerwatch.capture.base import CaptureError, CaptureSource
from blockerwatch.utils.imaging import pil_to_png, thumbnail

logger = logging.getLogger(__name__)


class ScreenCapture(CaptureSource):
    """Captures the desktop with mss.

    mss grabs are blocking, so they run in the default thread pool
    executor to keep the event loop free.
    """

    def __init__(
        self,
        monitor_index: int = 1,
        max_size: tuple[int, int] = (1280, 720),
    ) -> None:
        super().__init__()
        self._monitor_index = monitor_index
        self._max_size = max_size

    async def capture(self) -> bytearray | None:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._capture_sync)
        except ScreenShotError as e:
            raise CaptureError(f"Screen grab failed: {e}") from e

    def _capture_sync(self) -> bytearray | None:
        """Synchronous grab (runs in thread pool)."""
        with mss.mss() as sct:
            monitors = sct.monitors
            if len(monitors) <= self._monitor_index:
                logger.debug("No monitor at index %d (found %d)", self._monitor_index, len(monitors) - 1)
                return None
            shot = sct.grab(monitors[self._monitor_index])
            image = Image.frombytes("RGB", shot.size, shot.bgra, "raw", "BGRX")

        width, height = self._max_size
        return pil_to_png(thumbnail(image, width, height))
