"""Blocker detection pipeline.

Ties together capture, provider analysis, consensus scoring, and the
blocker registry:

    privacy gate -> capture -> OCR -> rules + vision + LLM -> score -> record
"""

from __future__ import annotations

import logging
import uuid
from typing import Callable

from blockerwatch.capture.coordinator import CaptureCoordinator
from blockerwatch.config.settings import PrivacyConfig
from blockerwatch.domain.models import (
    Blocker,
    BlockerCategory,
    BlockerContext,
    BlockerEvent,
    BlockerEventKind,
    BlockerStats,
    DetectionContext,
    HealthReport,
    SignalScores,
)
from blockerwatch.engine.notifications import NotificationBus
from blockerwatch.engine.orchestrator import ProviderOrchestrator
from blockerwatch.engine.registry import BlockerRegistry
from blockerwatch.engine.scoring import ConsensusScorer
from blockerwatch.providers.llm import INSIGHTS_UNAVAILABLE

logger = logging.getLogger(__name__)

DEFAULT_OCR_TEXT_LIMIT = 200

VISUAL_ERROR_SIGNAL = "Visual Error Detected"
STACK_TRACE_SIGNAL = "Stack Trace Visible"
LOADING_SIGNAL = "Loading Indicator"


def new_blocker_id() -> str:
    return f"blocker-{uuid.uuid4().hex}"


class BlockerDetector:
    """Runs detections and exposes the blocker query/command surface.

    Args:
        coordinator: Debounced capture front door.
        orchestrator: Provider fan-out for a captured frame.
        scorer: Consensus scorer and activation threshold.
        registry: Owner of blocker records.
        bus: Outbound notification bus. A fresh one is created if omitted.
        privacy: Capture policy checked before any capture.
        ocr_text_limit: Characters of OCR text kept in the blocker context.
        id_factory: Generates blocker ids.
    """

    def __init__(
        self,
        coordinator: CaptureCoordinator,
        orchestrator: ProviderOrchestrator,
        scorer: ConsensusScorer,
        registry: BlockerRegistry,
        bus: NotificationBus | None = None,
        privacy: PrivacyConfig | None = None,
        ocr_text_limit: int = DEFAULT_OCR_TEXT_LIMIT,
        id_factory: Callable[[], str] = new_blocker_id,
    ) -> None:
        self._coordinator = coordinator
        self._orchestrator = orchestrator
        self._scorer = scorer
        self._registry = registry
        self._bus = bus or NotificationBus()
        self._privacy = privacy or PrivacyConfig()
        self._ocr_text_limit = ocr_text_limit
        self._id_factory = id_factory

    @property
    def bus(self) -> NotificationBus:
        return self._bus

    @property
    def registry(self) -> BlockerRegistry:
        return self._registry

    @property
    def orchestrator(self) -> ProviderOrchestrator:
        return self._orchestrator

    @property
    def coordinator(self) -> CaptureCoordinator:
        return self._coordinator

    async def initialize(self) -> HealthReport:
        return await self._orchestrator.initialize()

    async def close(self) -> None:
        await self._bus.close()
        await self._orchestrator.close()

    def health(self) -> HealthReport:
        return self._orchestrator.health()

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    async def detect(self, context: DetectionContext) -> Blocker | None:
        """Run one detection. Returns the new blocker, or None."""
        if not self._privacy.capture_screenshots:
            logger.debug("Detection skipped: screenshot capture disabled")
            return None
        if not self._privacy.is_app_allowed(context.window_name):
            logger.debug("Detection skipped: %r excluded by privacy settings", context.window_name)
            return None

        async with self._coordinator.analysis_frame() as frame:
            if frame is None:
                logger.debug("Detection skipped: no frame captured (%s)", context.trigger.value)
                return None
            signals = await self._orchestrator.analyze(
                frame.data, context, self._registry.recent_categories()
            )

        score = self._scorer.score_signals(signals)
        if not self._scorer.should_materialize(score):
            logger.info(
                "No blocker (%s, score %.3f <= %.2f)",
                context.trigger.value, score, self._scorer.activation_threshold,
            )
            return None

        blocker = self._assemble(signals, context, score)
        self._registry.create(blocker)
        await self._bus.publish(BlockerEvent(kind=BlockerEventKind.CREATED, blocker=blocker))
        return blocker

    def _assemble(self, signals: SignalScores, context: DetectionContext, score: float) -> Blocker:
        llm = signals.llm_result
        signature = signals.rule.signature if signals.rule.detected else None

        category = llm.category
        if signature is not None and (not signals.llm.ok or category is BlockerCategory.OTHER):
            category = signature.category

        vision = signals.vision_result
        labels: list[str] = []
        if signature is not None:
            labels.append(signature.name)
        if vision is not None:
            if vision.has_error:
                labels.append(VISUAL_ERROR_SIGNAL)
            if vision.has_stack_trace:
                labels.append(STACK_TRACE_SIGNAL)
            if vision.has_loading_indicator:
                labels.append(LOADING_SIGNAL)

        suggested_action = llm.suggested_action
        if not signals.llm.ok and signature is not None and signature.auto_resolve_action:
            suggested_action = signature.auto_resolve_action

        return Blocker(
            id=self._id_factory(),
            category=category,
            severity=llm.severity,
            description=signature.name if signature is not None else category.label,
            confidence=score,
            signals=tuple(labels),
            suggested_action=suggested_action,
            duration_ms=context.activity_duration_ms,
            context=BlockerContext(
                window_name=context.window_name,
                ocr_text=signals.ocr_text[: self._ocr_text_limit],
                vision=vision,
            ),
        )

    # ------------------------------------------------------------------
    # Queries and commands
    # ------------------------------------------------------------------

    def list_active_blockers(self) -> list[Blocker]:
        return self._registry.list(active_only=True)

    def list_resolved_blockers(self, limit: int = 50) -> list[Blocker]:
        return self._registry.list_resolved(limit)

    def get_blocker(self, blocker_id: str) -> Blocker | None:
        return self._registry.get(blocker_id)

    def get_stats(self) -> BlockerStats:
        return self._registry.stats()

    async def resolve_blocker(self, blocker_id: str, action: str | None = None) -> Blocker | None:
        """Resolve a blocker and notify subscribers. Unknown ids are a no-op."""
        blocker, transitioned = self._registry.resolve_transition(blocker_id, action)
        if transitioned:
            await self._bus.publish(BlockerEvent(kind=BlockerEventKind.RESOLVED, blocker=blocker))
        return blocker

    def evict_older_than(self, days: float) -> int:
        return self._registry.evict_older_than(days)

    async def insights(self, blocker_id: str) -> str | None:
        """Ask the language model to explain a stored blocker.

        Returns None for an unknown id.
        """
        blocker = self._registry.get(blocker_id)
        if blocker is None:
            return None
        llm = self._orchestrator.llm
        if llm is None:
            return INSIGHTS_UNAVAILABLE
        context = (
            f"{blocker.description}. Window: {blocker.context.window_name}. "
            f"Screen: {blocker.context.ocr_text}"
        )
        try:
            return await llm.insights(blocker.category.value, context)
        except Exception as e:
            logger.warning("Insights failed for %s: %s", blocker_id, e)
            return INSIGHTS_UNAVAILABLE
