"""Runs the OCR, vision, and language-model providers for one detection.

OCR runs first because every other stage consumes its text. The rule
match is computed as soon as the text is available, then vision (when
not gated off) and the language model run concurrently. Every provider
call is bounded by its own timeout and wrapped so that it never raises:
failures become tagged ``ProviderOutcome`` values carrying the stage's
fallback.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, TypeVar

from blockerwatch.domain.models import (
    BlockerAnalysisRequest,
    DetectionContext,
    HealthReport,
    HealthState,
    ImageBytes,
    LLMAnalysis,
    OCRResult,
    ProviderHealth,
    ProviderOutcome,
    ProviderReadiness,
    ProviderStatus,
    SignalScores,
    VisionResult,
)
from blockerwatch.providers.base import (
    AnalysisProvider,
    LanguageModelProvider,
    OCRProvider,
    VisionProvider,
)
from blockerwatch.rules.matcher import SignalRuleMatcher

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_OCR_TIMEOUT = 30.0
DEFAULT_VISION_TIMEOUT = 60.0
DEFAULT_LLM_TIMEOUT = 30.0
DEFAULT_VISION_GATE = 0.7


class ProviderOrchestrator:
    """Fans a captured frame out to the analysis providers.

    Any provider may be None (not configured); its stage then reports
    ``unavailable`` and contributes its fallback.

    Args:
        ocr: Text extraction provider.
        vision: Visual classifier, invoked only when OCR confidence is
            below ``vision_gate``.
        llm: Language model provider.
        matcher: Signature matcher run over the OCR text.
        ocr_timeout / vision_timeout / llm_timeout: Per-call bounds in seconds.
        vision_gate: OCR confidence at or above which vision is skipped.
    """

    def __init__(
        self,
        ocr: OCRProvider | None,
        vision: VisionProvider | None,
        llm: LanguageModelProvider | None,
        matcher: SignalRuleMatcher,
        ocr_timeout: float = DEFAULT_OCR_TIMEOUT,
        vision_timeout: float = DEFAULT_VISION_TIMEOUT,
        llm_timeout: float = DEFAULT_LLM_TIMEOUT,
        vision_gate: float = DEFAULT_VISION_GATE,
    ) -> None:
        self._ocr = ocr
        self._vision = vision
        self._llm = llm
        self._matcher = matcher
        self._ocr_timeout = ocr_timeout
        self._vision_timeout = vision_timeout
        self._llm_timeout = llm_timeout
        self._vision_gate = vision_gate
        self._initialized = False
        self._health: dict[str, ProviderHealth] = {
            name: ProviderHealth(
                name=name,
                readiness=(
                    ProviderReadiness.UNKNOWN
                    if provider is not None
                    else ProviderReadiness.DISABLED
                ),
            )
            for name, provider in self._providers().items()
        }

    @property
    def matcher(self) -> SignalRuleMatcher:
        return self._matcher

    @property
    def llm(self) -> LanguageModelProvider | None:
        return self._llm

    def _providers(self) -> dict[str, AnalysisProvider | None]:
        return {"ocr": self._ocr, "vision": self._vision, "llm": self._llm}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> HealthReport:
        """Initialize every configured provider independently.

        A provider that fails to initialize is marked ``failed`` and the
        others still come up; detection then runs degraded.
        """
        for name, provider in self._providers().items():
            if provider is None:
                self._set_health(name, readiness=ProviderReadiness.DISABLED)
                continue
            try:
                await provider.initialize()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("Provider %s failed to initialize: %s", name, e)
                self._set_health(name, readiness=ProviderReadiness.FAILED, last_error=str(e))
            else:
                self._set_health(name, readiness=ProviderReadiness.READY, last_error="")
        self._initialized = True
        report = self.health()
        logger.info("Providers initialized: %s", report.state.value)
        return report

    async def close(self) -> None:
        for name, provider in self._providers().items():
            if provider is None:
                continue
            try:
                await provider.close()
            except Exception as e:
                logger.warning("Error closing provider %s: %s", name, e)

    def health(self) -> HealthReport:
        if not self._initialized:
            return HealthReport(state=HealthState.UNINITIALIZED, providers=dict(self._health))

        configured = [
            h for h in self._health.values() if h.readiness is not ProviderReadiness.DISABLED
        ]
        ready = [h for h in configured if h.readiness is ProviderReadiness.READY]
        failing = [
            h for h in ready
            if h.last_status in (ProviderStatus.FAILED, ProviderStatus.TIMED_OUT)
        ]

        if not ready:
            state = HealthState.UNAVAILABLE
        elif len(ready) < len(configured) or failing:
            state = HealthState.DEGRADED
        else:
            state = HealthState.HEALTHY
        return HealthReport(state=state, providers=dict(self._health))

    def _set_health(self, name: str, **changes: object) -> None:
        self._health[name] = self._health[name].model_copy(update=changes)

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def analyze(
        self,
        frame: ImageBytes,
        context: DetectionContext,
        recent_categories: tuple[str, ...] = (),
    ) -> SignalScores:
        """Gather every signal for one frame. Never raises on provider failure."""
        ocr = await self._run(
            "ocr",
            ProviderOutcome[OCRResult],
            self._ocr.extract(frame) if self._ocr is not None else None,
            self._ocr_timeout,
            fallback=OCRResult.empty(),
        )
        ocr_result = ocr.value or OCRResult.empty()

        rule = self._matcher.match(
            ocr_result.text, context.activity_duration_ms, context.window_name
        )

        gated = self._vision is not None and ocr_result.confidence >= self._vision_gate
        vision_call = None
        if self._vision is not None and not gated:
            vision_call = self._vision.analyze(frame)

        request = BlockerAnalysisRequest(
            ocr_text=ocr_result.text,
            window_name=context.window_name,
            activity_duration_ms=context.activity_duration_ms,
            recent_categories=recent_categories,
        )
        llm_call = self._llm.analyze_blocker(request) if self._llm is not None else None

        vision, llm = await asyncio.gather(
            self._run(
                "vision",
                ProviderOutcome[VisionResult],
                vision_call,
                self._vision_timeout,
                fallback=None,
                skipped=gated,
            ),
            self._run(
                "llm",
                ProviderOutcome[LLMAnalysis],
                llm_call,
                self._llm_timeout,
                fallback=LLMAnalysis.fallback(),
            ),
        )

        logger.debug(
            "Signals: ocr=%s(%.2f) rule=%s vision=%s llm=%s(%.2f)",
            ocr.status.value, ocr_result.confidence,
            rule.signature.id if rule.signature else "-",
            vision.status.value, llm.status.value,
            llm.value.confidence if llm.value else 0.0,
        )
        return SignalScores(rule=rule, ocr=ocr, vision=vision, llm=llm)

    async def _run(
        self,
        name: str,
        outcome_type: type[ProviderOutcome[T]],
        call: Awaitable[T] | None,
        timeout: float,
        fallback: T | None,
        skipped: bool = False,
    ) -> ProviderOutcome[T]:
        """Await one provider call under a timeout, converting failures.

        Never raises, except to propagate cancellation of the caller.
        """
        if call is None:
            status = ProviderStatus.SKIPPED if skipped else ProviderStatus.UNAVAILABLE
            return outcome_type(status=status, value=fallback)

        start = time.perf_counter()
        try:
            value = await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Provider %s timed out after %ss", name, timeout)
            outcome = outcome_type(
                status=ProviderStatus.TIMED_OUT,
                value=fallback,
                error=f"timed out after {timeout}s",
                elapsed_ms=_elapsed_ms(start),
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Provider %s failed: %s", name, e)
            outcome = outcome_type(
                status=ProviderStatus.FAILED,
                value=fallback,
                error=str(e) or type(e).__name__,
                elapsed_ms=_elapsed_ms(start),
            )
        else:
            outcome = outcome_type(
                status=ProviderStatus.OK, value=value, elapsed_ms=_elapsed_ms(start)
            )

        self._set_health(name, last_status=outcome.status, last_error=outcome.error)
        return outcome


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000
