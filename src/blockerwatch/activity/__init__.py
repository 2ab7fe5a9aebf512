"""Activity monitoring for blockerwatch.

Public API:
    WindowProbe -- Abstract focused-window reader
    XdotoolWindowProbe / AppleScriptWindowProbe -- Platform probes
    ActivityTracker -- Time-on-window bookkeeping
    WatchLoop -- Turns activity into detection triggers
"""

from blockerwatch.activity.probe import (
    AppleScriptWindowProbe,
    WindowProbe,
    XdotoolWindowProbe,
    default_probe,
)
from blockerwatch.activity.tracker import ActivityTracker

__all__ = [
    "ActivityTracker",
    "AppleScriptWindowProbe",
    "WatchLoop",
    "WindowProbe",
    "XdotoolWindowProbe",
    "default_probe",
]


def __getattr__(name: str) -> type:
    """Lazy import so the probes can be used without the detection engine."""
    if name == "WatchLoop":
        from blockerwatch.activity.loop import WatchLoop
        return WatchLoop
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
