"""Webcam capture implementation using OpenCV.

Points a camera at a screen instead of reading the framebuffer, for
machines where direct screen capture is not permitted.
"""

from __future__ import annotations

import asyncio
import logging

import cv2
import numpy as np

from blockerwatch.capture.base import CaptureError, CaptureSource
from blockerwatch.utils.imaging import encode_png

logger = logging.getLogger(__name__)


class WebcamCapture(CaptureSource):
    """Captures frames from a webcam using OpenCV.

    Runs OpenCV's blocking capture in a thread pool executor to avoid
    blocking the async event loop.
    """

    def __init__(
        self,
        device_index: int = 0,
        max_size: tuple[int, int] = (1280, 720),
    ) -> None:
        super().__init__()
        self._device_index = device_index
        self._max_size = max_size
        self._cap: cv2.VideoCapture | None = None

    async def open(self) -> None:
        """Open the webcam device."""
        loop = asyncio.get_running_loop()
        self._cap = await loop.run_in_executor(
            None, cv2.VideoCapture, self._device_index
        )
        if not self._cap.isOpened():
            raise CaptureError(
                f"Failed to open webcam device {self._device_index}"
            )
        self._is_open = True
        logger.info("Opened webcam device %d", self._device_index)

    async def close(self) -> None:
        """Release the webcam device."""
        if self._cap is not None and self._cap.isOpened():
            self._cap.release()
            logger.info("Released webcam device %d", self._device_index)
        self._cap = None
        self._is_open = False

    async def capture(self) -> bytearray | None:
        """Capture a single PNG-encoded frame from the webcam."""
        if not self._is_open or self._cap is None:
            raise CaptureError("Webcam is not open")
        loop = asyncio.get_running_loop()
        frame = await loop.run_in_executor(None, self._capture_sync)
        try:
            return encode_png(self._fit(frame))
        finally:
            frame.fill(0)

    def _capture_sync(self) -> np.ndarray:
        """Synchronous frame capture (runs in thread pool)."""
        ret, frame = self._cap.read()
        if not ret or frame is None:
            raise CaptureError("Failed to read frame from webcam")
        return frame

    def _fit(self, frame: np.ndarray) -> np.ndarray:
        """Downscale a frame to fit within max_size."""
        h, w = frame.shape[:2]
        max_w, max_h = self._max_size
        scale = min(max_w / w, max_h / h)
        if scale >= 1.0:
            return frame
        return cv2.resize(frame, (int(w * scale), int(h * scale)), interpolation=cv2.INTER_AREA)
