"""Frame capture module for blockerwatch.

Provides screen and webcam capture sources plus the coordinator that
debounces captures and hashes frames. The abstract base class allows
alternative capture implementations (e.g., in-memory test sources).

Public API:
    CaptureSource -- Abstract base class
    CaptureCoordinator -- Debounce + content-hash gate
    ScreenCapture -- mss desktop implementation
    WebcamCapture -- OpenCV webcam implementation
"""

from blockerwatch.capture.base import CaptureError, CaptureSource
from blockerwatch.capture.coordinator import AnalysisFrame, CaptureCoordinator

__all__ = [
    "AnalysisFrame",
    "CaptureCoordinator",
    "CaptureError",
    "CaptureSource",
    "ScreenCapture",
    "WebcamCapture",
]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require external deps."""
    if name == "ScreenCapture":
        from blockerwatch.capture.screen import ScreenCapture
        return ScreenCapture
    if name == "WebcamCapture":
        from blockerwatch.capture.webcam import WebcamCapture
        return WebcamCapture
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
