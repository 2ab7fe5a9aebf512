"""Foreground window probes.

Each probe shells out to a small platform tool to read the title (or
application name) of the focused window. Nothing else about the window
is collected.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 2.0


class WindowProbe(ABC):
    """Reports which window currently has focus."""

    @abstractmethod
    async def active_window(self) -> str | None:
        """Title of the focused window, or None if it cannot be determined."""
        ...


class CommandWindowProbe(WindowProbe):
    """Runs a command and treats its trimmed stdout as the window name."""

    command: tuple[str, ...] = ()

    def __init__(self, timeout: float = DEFAULT_PROBE_TIMEOUT) -> None:
        self._timeout = timeout
        self._missing = False

    async def active_window(self) -> str | None:
        if self._missing:
            return None
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except FileNotFoundError:
            logger.warning("%s not found; window tracking disabled", self.command[0])
            self._missing = True
            return None

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.debug("%s timed out", self.command[0])
            return None

        if proc.returncode != 0:
            return None
        name = stdout.decode("utf-8", errors="replace").strip()
        return name or None


class XdotoolWindowProbe(CommandWindowProbe):
    """X11 probe using ``xdotool``."""

    command = ("xdotool", "getactivewindow", "getwindowname")


class AppleScriptWindowProbe(CommandWindowProbe):
    """macOS probe reporting the frontmost application's name."""

    command = (
        "osascript",
        "-e",
        'tell application "System Events" to get name of first application process whose frontmost is true',
    )


def default_probe(platform: str | None = None) -> WindowProbe | None:
    """Pick the probe for the running platform, or None if unsupported."""
    platform = platform or sys.platform
    if platform == "darwin":
        return AppleScriptWindowProbe()
    if platform.startswith("linux"):
        return XdotoolWindowProbe()
    return None
