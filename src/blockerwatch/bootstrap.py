"""Wires a BlockerDetector together from Settings."""

from __future__ import annotations

import logging

from blockerwatch.capture.base import CaptureSource
from blockerwatch.capture.coordinator import CaptureCoordinator
from blockerwatch.config.settings import Settings
from blockerwatch.engine.detector import BlockerDetector
from blockerwatch.engine.notifications import NotificationBus
from blockerwatch.engine.orchestrator import ProviderOrchestrator
from blockerwatch.engine.registry import BlockerRegistry
from blockerwatch.engine.scoring import ConsensusScorer
from blockerwatch.providers.base import LanguageModelProvider, OCRProvider, VisionProvider
from blockerwatch.rules.catalog import DEFAULT_SIGNATURES
from blockerwatch.rules.matcher import SignalRuleMatcher

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


def build_capture_source(settings: Settings) -> CaptureSource:
    cfg = settings.capture
    max_size = (cfg.thumbnail_width, cfg.thumbnail_height)
    if cfg.source == "webcam":
        from blockerwatch.capture.webcam import WebcamCapture

        return WebcamCapture(device_index=cfg.device_index, max_size=max_size)

    from blockerwatch.capture.screen import ScreenCapture

    return ScreenCapture(monitor_index=cfg.monitor_index, max_size=max_size)


def build_ocr_provider(settings: Settings) -> OCRProvider | None:
    if not settings.ocr.enabled:
        return None
    from blockerwatch.providers.ocr import PaddleOCRProvider

    return PaddleOCRProvider(lang=settings.ocr.lang)


def build_vision_provider(settings: Settings) -> VisionProvider | None:
    cfg = settings.vision
    if not cfg.enabled:
        return None

    if cfg.provider == "anthropic":
        from blockerwatch.providers.anthropic import AnthropicVisionProvider

        return AnthropicVisionProvider(
            api_key=settings.anthropic_api_key.get_secret_value(),
            model=cfg.model,
            max_tokens=cfg.max_tokens,
        )

    from blockerwatch.providers.openai import OpenAIVisionProvider

    api_key = settings.openai_api_key.get_secret_value()
    base_url = cfg.base_url
    # If OpenRouter key is set, use it
    or_key = settings.openrouter_api_key.get_secret_value()
    if or_key:
        api_key = or_key
        if not base_url:
            base_url = OPENROUTER_BASE_URL

    return OpenAIVisionProvider(
        api_key=api_key,
        model=cfg.model,
        base_url=base_url,
        max_tokens=cfg.max_tokens,
    )


def build_llm_provider(settings: Settings) -> LanguageModelProvider | None:
    cfg = settings.llm
    if not cfg.enabled:
        return None
    from blockerwatch.providers.llm import OllamaProvider

    return OllamaProvider(
        base_url=cfg.base_url,
        model=cfg.model,
        temperature=cfg.temperature,
        num_predict=cfg.num_predict,
        timeout=cfg.timeout,
    )


def build_matcher(settings: Settings) -> SignalRuleMatcher:
    """Default catalog followed by any custom signatures, in order."""
    return SignalRuleMatcher(
        signatures=[*DEFAULT_SIGNATURES, *settings.detection.custom_signatures],
        developer_windows=settings.detection.developer_windows,
    )


def build_detector(
    settings: Settings,
    source: CaptureSource | None = None,
    ocr: OCRProvider | None = None,
    vision: VisionProvider | None = None,
    llm: LanguageModelProvider | None = None,
    bus: NotificationBus | None = None,
) -> BlockerDetector:
    """Build the full detection pipeline.

    Any collaborator passed explicitly replaces the one settings would build.
    """
    coordinator = CaptureCoordinator(
        source if source is not None else build_capture_source(settings),
        debounce_seconds=settings.capture.debounce_seconds,
    )
    orchestrator = ProviderOrchestrator(
        ocr=ocr if ocr is not None else build_ocr_provider(settings),
        vision=vision if vision is not None else build_vision_provider(settings),
        llm=llm if llm is not None else build_llm_provider(settings),
        matcher=build_matcher(settings),
        ocr_timeout=settings.ocr.timeout,
        vision_timeout=settings.vision.timeout,
        llm_timeout=settings.llm.timeout,
        vision_gate=settings.vision.gate_threshold,
    )
    detector = BlockerDetector(
        coordinator=coordinator,
        orchestrator=orchestrator,
        scorer=ConsensusScorer(settings.detection.activation_threshold),
        registry=BlockerRegistry(ring_size=settings.detection.recent_errors_size),
        bus=bus,
        privacy=settings.privacy,
        ocr_text_limit=settings.detection.ocr_text_limit,
    )
    logger.debug(
        "Detector built (capture=%s, vision=%s, llm=%s)",
        settings.capture.source, settings.vision.provider, settings.llm.model,
    )
    return detector
