"""Abstract base class for frame capture sources.

All capture implementations must conform to this interface, enabling
the system to swap between screen capture, webcam capture, or in-memory
test sources without changing the rest of the pipeline.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class CaptureSource(ABC):
    """Abstract interface for capturing encoded frames from a visual source.

    Frames are returned as PNG-encoded ``bytearray`` buffers so the
    caller can overwrite them once analysis is done. Frames are never
    written to disk.

    Example usage::

        async with ScreenCapture() as source:
            frame = await source.capture()
    """

    def __init__(self) -> None:
        self._is_open: bool = False

    @property
    def is_open(self) -> bool:
        """Whether the capture source is currently open and ready."""
        return self._is_open

    async def open(self) -> None:
        """Acquire any resources needed for capture."""
        self._is_open = True

    async def close(self) -> None:
        """Release capture resources. Safe to call multiple times."""
        self._is_open = False

    @abstractmethod
    async def capture(self) -> bytearray | None:
        """Capture a single encoded frame.

        Returns:
            The PNG-encoded frame, or None when no display is available.
            None is a normal outcome, not an error.

        Raises:
            CaptureError: If the source fails while capturing.
        """
        ...

    async def __aenter__(self) -> CaptureSource:
        """Async context manager entry -- opens the capture source."""
        await self.open()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        """Async context manager exit -- closes the capture source."""
        await self.close()


class CaptureError(Exception):
    """Raised when frame capture fails."""
