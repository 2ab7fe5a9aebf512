"""Core domain models for the blockerwatch system.

These models represent the data flowing through the detection pipeline:
captured frame metadata, blocker signatures, the per-provider analysis
outcomes, and the durable blocker records owned by the registry.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")

ImageBytes = bytes | bytearray | memoryview


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class BlockerCategory(str, enum.Enum):
    """Kind of blocker. Signatures use every member except OTHER."""

    BUILD_ERROR = "build_error"
    TIMEOUT = "timeout"
    CIRCULAR_DEPENDENCY = "circular_dep"
    PERMISSION = "permission"
    RESOURCE_EXHAUSTION = "resource"
    OTHER = "other"

    @property
    def label(self) -> str:
        """Upper-cased human label, e.g. 'BUILD ERROR'."""
        return self.value.replace("_", " ").upper()


class Severity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ProviderStatus(str, enum.Enum):
    """How a single provider call ended."""

    OK = "ok"
    UNAVAILABLE = "unavailable"  # Provider not configured
    SKIPPED = "skipped"  # Gated off for this detection
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class TriggerKind(str, enum.Enum):
    WINDOW_CHANGE = "window_change"
    IDLE_CHECK = "idle_check"
    MANUAL = "manual"


class BlockerEventKind(str, enum.Enum):
    CREATED = "created"
    RESOLVED = "resolved"


class HealthState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"


class ProviderReadiness(str, enum.Enum):
    READY = "ready"
    FAILED = "failed"
    DISABLED = "disabled"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Capture Models
# ---------------------------------------------------------------------------


class FrameMetadata(BaseModel):
    """Coarse metadata kept after a frame buffer is discarded."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(ge=0)
    height: int = Field(ge=0)
    channels: int = Field(ge=0, description="3 for RGB, 4 when an alpha channel is present")


class CaptureResult(BaseModel):
    """Outcome of a throttled capture attempt."""

    model_config = ConfigDict(frozen=True)

    captured: bool
    hash: str = Field(default="", description="Content hash of the last accepted frame")
    metadata: FrameMetadata | None = None
    changed: bool = Field(default=False, description="Whether the hash differs from the previous capture")


# ---------------------------------------------------------------------------
# Signature / Rule Models
# ---------------------------------------------------------------------------


class BlockerSignature(BaseModel):
    """A deterministic rule recognizing a known blocker pattern."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    category: BlockerCategory
    signals: tuple[str, ...] = Field(min_length=1, description="Case-insensitive text signals")
    confidence: float = Field(ge=0.5, le=1.0, description="Base confidence")
    min_duration_ms: int = Field(ge=0, description="Minimum activity duration before the rule may fire")
    auto_resolve_action: str | None = None

    @field_validator("category")
    @classmethod
    def _category_is_specific(cls, value: BlockerCategory) -> BlockerCategory:
        if value is BlockerCategory.OTHER:
            raise ValueError("signature category must be a specific blocker category")
        return value

    @field_validator("signals")
    @classmethod
    def _signals_not_blank(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if any(not s.strip() for s in value):
            raise ValueError("signals must be non-empty strings")
        return value


class RuleMatch(BaseModel):
    """Result of matching text against the signature catalog."""

    model_config = ConfigDict(frozen=True)

    detected: bool = False
    signature: BlockerSignature | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    matched_signals: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Provider Models
# ---------------------------------------------------------------------------


class OCRResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    languages: tuple[str, ...] = ()

    @classmethod
    def empty(cls) -> OCRResult:
        return cls(text="", confidence=0.0, languages=())


class VisionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_error: bool = False
    has_stack_trace: bool = False
    has_loading_indicator: bool = False
    description: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class LLMAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: BlockerCategory = BlockerCategory.OTHER
    severity: Severity = Severity.MEDIUM
    suggested_action: str = ""
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    @classmethod
    def fallback(cls) -> LLMAnalysis:
        """Conservative result used whenever the language model fails."""
        return cls(
            category=BlockerCategory.OTHER,
            severity=Severity.LOW,
            suggested_action="Check console logs for more details",
            confidence=0.3,
        )


class BlockerAnalysisRequest(BaseModel):
    """Context handed to the language model for one detection."""

    model_config = ConfigDict(frozen=True)

    ocr_text: str
    window_name: str
    activity_duration_ms: int = Field(ge=0)
    recent_categories: tuple[str, ...] = ()


class ProviderOutcome(BaseModel, Generic[T]):
    """Tagged result of one provider call.

    ``value`` holds the provider's result when ``status`` is OK. For other
    statuses it holds the fallback value, if the stage has one, else None.
    """

    model_config = ConfigDict(frozen=True)

    status: ProviderStatus
    value: T | None = None
    error: str = ""
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is ProviderStatus.OK


class SignalScores(BaseModel):
    """Every signal gathered for a single detection attempt. Never persisted."""

    model_config = ConfigDict(frozen=True)

    rule: RuleMatch
    ocr: ProviderOutcome[OCRResult]
    vision: ProviderOutcome[VisionResult]
    llm: ProviderOutcome[LLMAnalysis]

    @property
    def ocr_text(self) -> str:
        return self.ocr.value.text if self.ocr.value is not None else ""

    @property
    def ocr_confidence(self) -> float:
        return self.ocr.value.confidence if self.ocr.value is not None else 0.0

    @property
    def vision_result(self) -> VisionResult | None:
        return self.vision.value if self.vision.ok else None

    @property
    def llm_result(self) -> LLMAnalysis:
        return self.llm.value if self.llm.value is not None else LLMAnalysis.fallback()


# ---------------------------------------------------------------------------
# Blocker Models
# ---------------------------------------------------------------------------


class DetectionContext(BaseModel):
    """What the trigger knows about the foreground activity."""

    model_config = ConfigDict(frozen=True)

    window_name: str = ""
    activity_duration_ms: int = Field(default=0, ge=0)
    trigger: TriggerKind = TriggerKind.MANUAL


class BlockerContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    window_name: str
    ocr_text: str = Field(description="OCR text, truncated")
    vision: VisionResult | None = None


class Blocker(BaseModel):
    """A durable record asserting the developer is likely stuck."""

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime = Field(default_factory=utcnow)
    category: BlockerCategory
    severity: Severity
    description: str
    confidence: float = Field(ge=0.0, le=1.0)
    signals: tuple[str, ...] = ()
    suggested_action: str = ""
    duration_ms: int = Field(ge=0)
    resolved: bool = False
    context: BlockerContext


class BlockerStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    resolved: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)
    by_severity: dict[str, int] = Field(default_factory=dict)


class BlockerEvent(BaseModel):
    """Outbound notification carrying the full blocker record."""

    model_config = ConfigDict(frozen=True)

    kind: BlockerEventKind
    blocker: Blocker
    timestamp: datetime = Field(default_factory=utcnow)


# ---------------------------------------------------------------------------
# Health Models
# ---------------------------------------------------------------------------


class ProviderHealth(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    readiness: ProviderReadiness = ProviderReadiness.UNKNOWN
    last_status: ProviderStatus | None = None
    last_error: str = ""


class HealthReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: HealthState
    providers: dict[str, ProviderHealth] = Field(default_factory=dict)

    @property
    def degraded(self) -> bool:
        return self.state is not HealthState.HEALTHY
