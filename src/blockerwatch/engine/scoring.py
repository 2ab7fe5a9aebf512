"""Weighted consensus over rule, vision, and language-model signals."""

from __future__ import annotations

import logging

from blockerwatch.domain.models import LLMAnalysis, RuleMatch, SignalScores, VisionResult

logger = logging.getLogger(__name__)

RULE_WEIGHT = 0.4
VISION_WEIGHT = 0.3
LLM_WEIGHT = 0.3

VISION_ERROR_WEIGHT = 0.8
VISION_STACK_TRACE_WEIGHT = 0.6
VISION_LOADING_WEIGHT = 0.4

OCR_TRUST_FLOOR = 0.5
DEFAULT_ACTIVATION_THRESHOLD = 0.5


def vision_strength(vision: VisionResult) -> float:
    return (
        VISION_ERROR_WEIGHT * vision.has_error
        + VISION_STACK_TRACE_WEIGHT * vision.has_stack_trace
        + VISION_LOADING_WEIGHT * vision.has_loading_indicator
    )


class ConsensusScorer:
    """Combines detection signals into a single confidence in [0, 1].

    Each term contributes its weight to the denominator only when its
    source produced a result: the rule term when a rule matched, the
    vision term when vision ran successfully. The language-model term
    always contributes because the model stage always yields a result,
    real or fallback. The weighted mean is then discounted by the OCR
    trust modifier ``max(0.5, ocr_confidence)``.
    """

    def __init__(self, activation_threshold: float = DEFAULT_ACTIVATION_THRESHOLD) -> None:
        self._threshold = activation_threshold

    @property
    def activation_threshold(self) -> float:
        return self._threshold

    def score(
        self,
        rule: RuleMatch,
        vision: VisionResult | None,
        llm: LLMAnalysis,
        ocr_confidence: float,
    ) -> float:
        total = llm.confidence * LLM_WEIGHT
        weights = LLM_WEIGHT

        if rule.detected:
            total += rule.confidence * RULE_WEIGHT
            weights += RULE_WEIGHT

        if vision is not None:
            total += vision_strength(vision) * VISION_WEIGHT
            weights += VISION_WEIGHT

        trust = max(OCR_TRUST_FLOOR, ocr_confidence)
        # Stacked vision flags can push the mean above 1
        return max(0.0, min(1.0, total / weights * trust))

    def score_signals(self, signals: SignalScores) -> float:
        return self.score(
            signals.rule,
            signals.vision_result,
            signals.llm_result,
            signals.ocr_confidence,
        )

    def should_materialize(self, score: float) -> bool:
        """True iff the score strictly exceeds the activation threshold."""
        return score > self._threshold
