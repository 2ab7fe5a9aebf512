"""Tests for the CaptureSource abstract base class and concrete sources."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from blockerwatch.capture.base import CaptureError, CaptureSource
from blockerwatch.capture.screen import ScreenCapture
from blockerwatch.utils.imaging import frame_metadata


class TestCaptureSourceInterface:
    def test_cannot_instantiate_abstract_class(self) -> None:
        """CaptureSource should not be instantiable directly."""
        with pytest.raises(TypeError):
            CaptureSource()  # type: ignore[abstract]

    @pytest.mark.asyncio
    async def test_context_manager_opens_and_closes(self, make_source, png_bytes) -> None:
        source = make_source(png_bytes)
        async with source as opened:
            assert opened.is_open
        assert not source.is_open


class _FakeShot:
    def __init__(self, width: int, height: int) -> None:
        self.size = (width, height)
        self.bgra = np.full((height, width, 4), 128, dtype=np.uint8).tobytes()


def _fake_mss(monitors: list[dict], shot: _FakeShot | Exception) -> MagicMock:
    sct = MagicMock()
    sct.monitors = monitors
    if isinstance(shot, Exception):
        sct.grab.side_effect = shot
    else:
        sct.grab.return_value = shot
    factory = MagicMock()
    factory.return_value.__enter__.return_value = sct
    factory.return_value.__exit__.return_value = False
    return factory


class TestScreenCapture:
    @pytest.mark.asyncio
    async def test_capture_downscales_to_thumbnail(self) -> None:
        monitors = [{"left": 0}, {"left": 0, "top": 0, "width": 400, "height": 200}]
        with patch("blockerwatch.capture.screen.mss.mss", _fake_mss(monitors, _FakeShot(400, 200))):
            capture = ScreenCapture(max_size=(100, 100))
            frame = await capture.capture()

        meta = frame_metadata(frame)
        assert (meta.width, meta.height) == (100, 50)

    @pytest.mark.asyncio
    async def test_missing_monitor_returns_none(self) -> None:
        with patch("blockerwatch.capture.screen.mss.mss", _fake_mss([{"left": 0}], _FakeShot(1, 1))):
            capture = ScreenCapture(monitor_index=1)
            assert await capture.capture() is None

    @pytest.mark.asyncio
    async def test_grab_failure_raises_capture_error(self) -> None:
        from mss.exception import ScreenShotError

        monitors = [{"left": 0}, {"left": 0, "top": 0, "width": 10, "height": 10}]
        with patch(
            "blockerwatch.capture.screen.mss.mss",
            _fake_mss(monitors, ScreenShotError("no X server")),
        ):
            with pytest.raises(CaptureError):
                await ScreenCapture().capture()
