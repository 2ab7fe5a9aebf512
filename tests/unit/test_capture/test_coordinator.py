"""Tests for the CaptureCoordinator debounce and hashing gate."""

from __future__ import annotations

import hashlib

import pytest

from blockerwatch.capture.base import CaptureError
from blockerwatch.capture.coordinator import CaptureCoordinator


class TestTryCapture:
    @pytest.mark.asyncio
    async def test_accepts_first_capture(self, make_source, png_bytes, clock) -> None:
        """The first capture is accepted with a SHA-256 hash and metadata."""
        coordinator = CaptureCoordinator(make_source(png_bytes), clock=clock)

        result = await coordinator.try_capture()

        assert result.captured is True
        assert result.hash == hashlib.sha256(png_bytes).hexdigest()
        assert result.metadata.width == 32
        assert result.metadata.height == 24
        assert result.metadata.channels == 3
        assert result.changed is True

    @pytest.mark.asyncio
    async def test_second_call_within_window_is_debounced(self, make_source, png_bytes, clock) -> None:
        """Two calls inside the debounce window: the second is rejected, hash unchanged."""
        source = make_source(png_bytes)
        coordinator = CaptureCoordinator(source, debounce_seconds=3.0, clock=clock)

        first = await coordinator.try_capture()
        clock.advance(2.9)
        second = await coordinator.try_capture()

        assert second.captured is False
        assert second.hash == first.hash
        assert second.metadata is None
        assert source.calls == 1

    @pytest.mark.asyncio
    async def test_accepts_again_after_window(self, make_source, png_bytes, clock) -> None:
        coordinator = CaptureCoordinator(make_source(png_bytes), debounce_seconds=3.0, clock=clock)

        await coordinator.try_capture()
        clock.advance(3.0)
        result = await coordinator.try_capture()

        assert result.captured is True
        assert result.changed is False

    @pytest.mark.asyncio
    async def test_reports_change_when_content_differs(
        self, make_source, png_bytes, other_png_bytes, clock
    ) -> None:
        coordinator = CaptureCoordinator(
            make_source(png_bytes, other_png_bytes), debounce_seconds=1.0, clock=clock
        )

        first = await coordinator.try_capture()
        clock.advance(5)
        second = await coordinator.try_capture()

        assert second.changed is True
        assert second.hash != first.hash
        assert coordinator.last_hash == second.hash

    @pytest.mark.asyncio
    async def test_buffer_is_zeroed_after_capture(self, make_source, png_bytes, clock) -> None:
        """The frame buffer is overwritten before the coordinator lets go of it."""
        source = make_source(png_bytes)
        coordinator = CaptureCoordinator(source, clock=clock)

        await coordinator.try_capture()

        assert len(source.returned) == 1
        assert not any(source.returned[0])

    @pytest.mark.asyncio
    async def test_source_error_returns_previous_hash(self, make_source, png_bytes, clock) -> None:
        """A failing source never raises; the previous hash is kept."""
        source = make_source(png_bytes, CaptureError("display gone"))
        coordinator = CaptureCoordinator(source, debounce_seconds=1.0, clock=clock)

        first = await coordinator.try_capture()
        clock.advance(5)
        result = await coordinator.try_capture()

        assert result.captured is False
        assert result.hash == first.hash

    @pytest.mark.asyncio
    async def test_no_display_is_not_an_error(self, make_source, clock) -> None:
        coordinator = CaptureCoordinator(make_source(None), clock=clock)

        result = await coordinator.try_capture()

        assert result.captured is False
        assert result.hash == ""
        assert coordinator.last_capture_time is None

    @pytest.mark.asyncio
    async def test_undecodable_frame_is_rejected_and_zeroed(self, make_source, clock) -> None:
        source = make_source(b"not an image")
        coordinator = CaptureCoordinator(source, clock=clock)

        result = await coordinator.try_capture()

        assert result.captured is False
        assert not any(source.returned[0])


class TestAnalysisFrame:
    @pytest.mark.asyncio
    async def test_yields_frame_then_zeroes_it(self, make_source, png_bytes, clock) -> None:
        source = make_source(png_bytes)
        coordinator = CaptureCoordinator(source, clock=clock)

        async with coordinator.analysis_frame() as frame:
            assert frame is not None
            assert bytes(frame.data) == png_bytes
            held = frame.data

        assert not any(held)

    @pytest.mark.asyncio
    async def test_zeroes_frame_when_analysis_raises(self, make_source, png_bytes, clock) -> None:
        source = make_source(png_bytes)
        coordinator = CaptureCoordinator(source, clock=clock)

        with pytest.raises(RuntimeError):
            async with coordinator.analysis_frame() as frame:
                raise RuntimeError("analysis blew up")

        assert not any(source.returned[0])

    @pytest.mark.asyncio
    async def test_shares_debounce_with_try_capture(self, make_source, png_bytes, clock) -> None:
        """Both capture paths go through one throttle."""
        coordinator = CaptureCoordinator(make_source(png_bytes), debounce_seconds=3.0, clock=clock)

        await coordinator.try_capture()
        clock.advance(1)
        async with coordinator.analysis_frame() as frame:
            assert frame is None
