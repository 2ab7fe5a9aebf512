"""Throttled, deduplicating front door to a capture source.

Every capture in the system goes through one coordinator so that a
single debounce window applies to both the cheap change-detection path
and the full analysis path. Frame buffers only live inside the
coordinator's context managers and are zeroed on the way out.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable

from blockerwatch.capture.base import CaptureSource
from blockerwatch.domain.models import CaptureResult, FrameMetadata
from blockerwatch.utils.imaging import content_hash, frame_metadata, zero_buffer

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 3.0


@dataclass(frozen=True)
class AnalysisFrame:
    """An accepted frame, valid only inside ``analysis_frame()``."""

    data: bytearray
    hash: str
    metadata: FrameMetadata
    changed: bool


class CaptureCoordinator:
    """Debounces captures and tracks the hash of the last accepted frame."""

    def __init__(
        self,
        source: CaptureSource,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._debounce = debounce_seconds
        self._clock = clock
        self._last_capture_time: float | None = None
        self._last_hash: str = ""
        self._lock = asyncio.Lock()

    @property
    def last_hash(self) -> str:
        return self._last_hash

    @property
    def last_capture_time(self) -> float | None:
        return self._last_capture_time

    async def try_capture(self) -> CaptureResult:
        """Capture, hash, and immediately discard a frame.

        Never raises: a debounced or failed capture returns
        ``captured=False`` with the previous hash.
        """
        async with self._acquire() as (result, _frame):
            return result

    @asynccontextmanager
    async def analysis_frame(self) -> AsyncIterator[AnalysisFrame | None]:
        """Yield an accepted frame for analysis, or None if rejected.

        The frame buffer is zeroed when the block exits, whether or not
        analysis succeeded.
        """
        async with self._acquire() as (result, frame):
            if not result.captured or frame is None:
                yield None
            else:
                yield AnalysisFrame(
                    data=frame,
                    hash=result.hash,
                    metadata=result.metadata,
                    changed=result.changed,
                )

    @asynccontextmanager
    async def _acquire(self) -> AsyncIterator[tuple[CaptureResult, bytearray | None]]:
        frame: bytearray | None = None
        try:
            result, frame = await self._capture_locked()
            yield result, frame
        finally:
            if frame is not None:
                zero_buffer(frame)

    async def _capture_locked(self) -> tuple[CaptureResult, bytearray | None]:
        async with self._lock:
            now = self._clock()
            if (
                self._last_capture_time is not None
                and now - self._last_capture_time < self._debounce
            ):
                logger.debug(
                    "Capture debounced (%.2fs since last, window %.2fs)",
                    now - self._last_capture_time, self._debounce,
                )
                return self._rejected(), None

            frame: bytearray | None = None
            try:
                frame = await self._source.capture()
                if not frame:
                    logger.debug("Capture source returned no frame")
                    return self._rejected(), None
                digest = content_hash(frame)
                metadata = frame_metadata(frame)
            except Exception as e:
                logger.warning("Capture failed: %s", e)
                if frame is not None:
                    zero_buffer(frame)
                return self._rejected(), None

            changed = digest != self._last_hash
            self._last_hash = digest
            self._last_capture_time = now
            return (
                CaptureResult(captured=True, hash=digest, metadata=metadata, changed=changed),
                frame,
            )

    def _rejected(self) -> CaptureResult:
        return CaptureResult(captured=False, hash=self._last_hash, metadata=None, changed=False)
