"""Shared test fixtures for the blockerwatch test suite.

Provides in-memory capture sources, scripted providers, and a fully
wired detector that never touches the screen or the network.
"""

from __future__ import annotations

import asyncio
import io
from datetime import datetime, timezone
from typing import Any, Callable

import pytest
from PIL import Image

from blockerwatch.capture.base import CaptureSource
from blockerwatch.capture.coordinator import CaptureCoordinator
from blockerwatch.config.settings import PrivacyConfig
from blockerwatch.domain.models import (
    BlockerAnalysisRequest,
    BlockerCategory,
    LLMAnalysis,
    OCRResult,
    Severity,
    VisionResult,
)
from blockerwatch.engine.detector import BlockerDetector
from blockerwatch.engine.notifications import NotificationBus
from blockerwatch.engine.orchestrator import ProviderOrchestrator
from blockerwatch.engine.registry import BlockerRegistry
from blockerwatch.engine.scoring import ConsensusScorer
from blockerwatch.providers.base import LanguageModelProvider, OCRProvider, VisionProvider
from blockerwatch.rules.matcher import SignalRuleMatcher


def _png(color: tuple[int, int, int], size: tuple[int, int] = (32, 24)) -> bytes:
    out = io.BytesIO()
    Image.new("RGB", size, color).save(out, format="PNG")
    return out.getvalue()


# ---------------------------------------------------------------------------
# Clocks
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Frames / Capture
# ---------------------------------------------------------------------------


@pytest.fixture
def png_bytes() -> bytes:
    """A small dark PNG frame."""
    return _png((20, 20, 20))


@pytest.fixture
def other_png_bytes() -> bytes:
    """A PNG frame with different content."""
    return _png((200, 30, 30))


class FakeCaptureSource(CaptureSource):
    """Returns scripted frames; the last script item repeats forever.

    Script items may be bytes (a frame), None (no display), or an
    exception instance (raised from ``capture``).
    """

    def __init__(self, script: list[Any]) -> None:
        super().__init__()
        self._script = list(script)
        self.calls = 0
        self.returned: list[bytearray] = []

    async def capture(self) -> bytearray | None:
        self.calls += 1
        item = self._script.pop(0) if len(self._script) > 1 else self._script[0]
        if isinstance(item, Exception):
            raise item
        if item is None:
            return None
        buffer = bytearray(item)
        self.returned.append(buffer)
        return buffer


@pytest.fixture
def make_source() -> Callable[..., FakeCaptureSource]:
    def factory(*script: Any) -> FakeCaptureSource:
        return FakeCaptureSource(list(script))

    return factory


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class ScriptedOCR(OCRProvider):
    def __init__(self, result: OCRResult | Exception, delay: float = 0.0) -> None:
        self.result = result
        self.delay = delay
        self.calls = 0
        self.init_error: Exception | None = None

    async def initialize(self) -> None:
        if self.init_error is not None:
            raise self.init_error

    async def extract(self, image: Any) -> OCRResult:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result

    async def health_check(self) -> bool:
        return True


class ScriptedVision(VisionProvider):
    def __init__(self, result: VisionResult | Exception, delay: float = 0.0) -> None:
        self.result = result
        self.delay = delay
        self.calls = 0
        self.init_error: Exception | None = None

    async def initialize(self) -> None:
        if self.init_error is not None:
            raise self.init_error

    async def analyze(self, image: Any) -> VisionResult:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result

    async def health_check(self) -> bool:
        return True


class ScriptedLLM(LanguageModelProvider):
    def __init__(self, result: LLMAnalysis | Exception, delay: float = 0.0) -> None:
        self.result = result
        self.delay = delay
        self.requests: list[BlockerAnalysisRequest] = []
        self.insight_calls: list[tuple[str, str]] = []
        self.init_error: Exception | None = None

    async def initialize(self) -> None:
        if self.init_error is not None:
            raise self.init_error

    async def analyze_blocker(self, request: BlockerAnalysisRequest) -> LLMAnalysis:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result

    async def insights(self, category: str, context: str) -> str:
        self.insight_calls.append((category, context))
        return f"Insights for {category}"

    async def health_check(self) -> bool:
        return True


@pytest.fixture
def make_ocr() -> Callable[..., ScriptedOCR]:
    def factory(text: str = "", confidence: float = 0.9, error: Exception | None = None,
                delay: float = 0.0) -> ScriptedOCR:
        result = error if error is not None else OCRResult(
            text=text, confidence=confidence, languages=("en",)
        )
        return ScriptedOCR(result, delay=delay)

    return factory


@pytest.fixture
def make_vision() -> Callable[..., ScriptedVision]:
    def factory(has_error: bool = False, has_stack_trace: bool = False,
                has_loading_indicator: bool = False, error: Exception | None = None,
                delay: float = 0.0) -> ScriptedVision:
        result = error if error is not None else VisionResult(
            has_error=has_error,
            has_stack_trace=has_stack_trace,
            has_loading_indicator=has_loading_indicator,
            description="scripted",
            confidence=0.8,
        )
        return ScriptedVision(result, delay=delay)

    return factory


@pytest.fixture
def make_llm() -> Callable[..., ScriptedLLM]:
    def factory(category: BlockerCategory = BlockerCategory.BUILD_ERROR,
                severity: Severity = Severity.HIGH, confidence: float = 0.9,
                action: str = "Fix the failing build", error: Exception | None = None,
                delay: float = 0.0) -> ScriptedLLM:
        result = error if error is not None else LLMAnalysis(
            category=category, severity=severity,
            suggested_action=action, confidence=confidence,
        )
        return ScriptedLLM(result, delay=delay)

    return factory


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


@pytest.fixture
def make_detector(png_bytes: bytes, clock: FakeClock) -> Callable[..., BlockerDetector]:
    """Build a detector around scripted collaborators.

    The capture debounce is zero so consecutive detections each get a frame.
    """

    def factory(
        ocr: OCRProvider | None = None,
        vision: VisionProvider | None = None,
        llm: LanguageModelProvider | None = None,
        source: CaptureSource | None = None,
        privacy: PrivacyConfig | None = None,
        bus: NotificationBus | None = None,
        registry: BlockerRegistry | None = None,
        debounce_seconds: float = 0.0,
        timeouts: float = 1.0,
    ) -> BlockerDetector:
        coordinator = CaptureCoordinator(
            source if source is not None else FakeCaptureSource([png_bytes]),
            debounce_seconds=debounce_seconds,
            clock=clock,
        )
        orchestrator = ProviderOrchestrator(
            ocr=ocr,
            vision=vision,
            llm=llm,
            matcher=SignalRuleMatcher(),
            ocr_timeout=timeouts,
            vision_timeout=timeouts,
            llm_timeout=timeouts,
        )
        return BlockerDetector(
            coordinator=coordinator,
            orchestrator=orchestrator,
            scorer=ConsensusScorer(),
            registry=registry if registry is not None else BlockerRegistry(),
            bus=bus,
            privacy=privacy,
        )

    return factory
