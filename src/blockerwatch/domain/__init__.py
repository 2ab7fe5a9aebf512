"""Domain models for blockerwatch.

This package contains all core data structures, enumerations, and value
objects used throughout the system. All models use Pydantic v2 for
validation and serialization.
"""

from blockerwatch.domain.models import (
    Blocker,
    BlockerAnalysisRequest,
    BlockerCategory,
    BlockerContext,
    BlockerEvent,
    BlockerEventKind,
    BlockerSignature,
    BlockerStats,
    CaptureResult,
    DetectionContext,
    FrameMetadata,
    HealthReport,
    HealthState,
    LLMAnalysis,
    OCRResult,
    ProviderHealth,
    ProviderOutcome,
    ProviderReadiness,
    ProviderStatus,
    RuleMatch,
    Severity,
    SignalScores,
    TriggerKind,
    VisionResult,
)

__all__ = [
    "Blocker",
    "BlockerAnalysisRequest",
    "BlockerCategory",
    "BlockerContext",
    "BlockerEvent",
    "BlockerEventKind",
    "BlockerSignature",
    "BlockerStats",
    "CaptureResult",
    "DetectionContext",
    "FrameMetadata",
    "HealthReport",
    "HealthState",
    "LLMAnalysis",
    "OCRResult",
    "ProviderHealth",
    "ProviderOutcome",
    "ProviderReadiness",
    "ProviderStatus",
    "RuleMatch",
    "Severity",
    "SignalScores",
    "TriggerKind",
    "VisionResult",
]
