"""Tests for the ActivityTracker and window probes."""

from __future__ import annotations

import shutil

import pytest

from blockerwatch.activity.probe import (
    AppleScriptWindowProbe,
    CommandWindowProbe,
    XdotoolWindowProbe,
    default_probe,
)
from blockerwatch.activity.tracker import ActivityTracker
from blockerwatch.domain.models import TriggerKind


class TestActivityTracker:
    def test_focus_change_resets_duration(self, clock) -> None:
        tracker = ActivityTracker(clock=clock)

        assert tracker.update("Terminal") is True
        clock.advance(12.5)
        assert tracker.activity_duration_ms() == 12500

        assert tracker.update("Terminal") is False
        assert tracker.update("VS Code") is True
        assert tracker.activity_duration_ms() == 0
        assert tracker.current_window == "VS Code"

    def test_dwelling_after_threshold(self, clock) -> None:
        tracker = ActivityTracker(idle_threshold=30.0, clock=clock)
        tracker.update("Terminal")

        clock.advance(29.9)
        assert tracker.is_dwelling() is False
        clock.advance(0.1)
        assert tracker.is_dwelling() is True

    def test_no_window_is_never_dwelling(self, clock) -> None:
        tracker = ActivityTracker(idle_threshold=1.0, clock=clock)
        clock.advance(60)

        assert tracker.is_dwelling() is False

    def test_context(self, clock) -> None:
        tracker = ActivityTracker(clock=clock)
        tracker.update("PyCharm")
        clock.advance(3)

        context = tracker.context(TriggerKind.IDLE_CHECK)

        assert context.window_name == "PyCharm"
        assert context.activity_duration_ms == 3000
        assert context.trigger is TriggerKind.IDLE_CHECK


class _Command(CommandWindowProbe):
    def __init__(self, *command: str, timeout: float = 2.0) -> None:
        super().__init__(timeout=timeout)
        self.command = command


class TestCommandWindowProbe:
    @pytest.mark.asyncio
    async def test_missing_binary_disables_probe(self, caplog: pytest.LogCaptureFixture) -> None:
        probe = _Command("blockerwatch-no-such-binary")

        assert await probe.active_window() is None
        assert await probe.active_window() is None
        assert caplog.text.count("window tracking disabled") == 1

    @pytest.mark.asyncio
    @pytest.mark.skipif(shutil.which("echo") is None, reason="echo not available")
    async def test_stdout_is_window_name(self) -> None:
        assert await _Command("echo", "  main.py - VS Code ").active_window() == "main.py - VS Code"

    @pytest.mark.asyncio
    @pytest.mark.skipif(shutil.which("false") is None, reason="false not available")
    async def test_nonzero_exit_is_unknown(self) -> None:
        assert await _Command("false").active_window() is None

    @pytest.mark.asyncio
    @pytest.mark.skipif(shutil.which("sleep") is None, reason="sleep not available")
    async def test_timeout_is_unknown(self) -> None:
        assert await _Command("sleep", "5", timeout=0.1).active_window() is None


class TestDefaultProbe:
    def test_platform_selection(self) -> None:
        assert isinstance(default_probe("darwin"), AppleScriptWindowProbe)
        assert isinstance(default_probe("linux"), XdotoolWindowProbe)
        assert default_probe("win32") is None
