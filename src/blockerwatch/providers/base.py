"""Abstract base classes for analysis providers.

OCR, vision, and language-model providers are reached only through
these narrow contracts, so concrete models can be swapped without
touching the orchestration or scoring code.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any

from blockerwatch.domain.models import (
    BlockerAnalysisRequest,
    ImageBytes,
    LLMAnalysis,
    OCRResult,
    VisionResult,
)

logger = logging.getLogger(__name__)


class AnalysisProvider(ABC):
    """Behaviour shared by every provider."""

    name: str = "provider"

    async def initialize(self) -> None:
        """Prepare the provider (load models, open clients).

        Raises:
            ProviderError: If the provider cannot be made ready.
        """

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the provider is reachable and ready."""
        ...

    async def close(self) -> None:
        """Release any clients held by the provider."""


class OCRProvider(AnalysisProvider):
    name = "ocr"

    @abstractmethod
    async def extract(self, image: ImageBytes) -> OCRResult:
        """Extract text from an encoded frame.

        Unreadable images yield an empty result with confidence 0
        rather than an exception.
        """
        ...


class VisionProvider(AnalysisProvider):
    name = "vision"

    @abstractmethod
    async def analyze(self, image: ImageBytes) -> VisionResult:
        """Classify visual blocker indicators in an encoded frame."""
        ...


class LanguageModelProvider(AnalysisProvider):
    name = "llm"

    @abstractmethod
    async def analyze_blocker(self, request: BlockerAnalysisRequest) -> LLMAnalysis:
        """Judge whether the described situation is a blocker."""
        ...

    @abstractmethod
    async def insights(self, category: str, context: str) -> str:
        """Explain a blocker and suggest fixes in a few sentences."""
        ...


def extract_json_object(raw_response: str) -> dict[str, Any] | None:
    """Pull the first JSON object out of a free-text model response.

    Handles markdown code fences, leading/trailing prose, and invalid
    backslash escapes. Returns None if nothing parses.
    """
    json_str = raw_response.strip()

    # Remove markdown code block if present
    match = re.search(r"```(?:json)?\s*(.*?)```", json_str, re.DOTALL)
    if match:
        json_str = match.group(1).strip()

    # Find JSON object in text
    brace_match = re.search(r"\{.*\}", json_str, re.DOTALL)
    if brace_match:
        json_str = brace_match.group(0)

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError:
        # Fix invalid escape sequences by replacing lone backslashes
        try:
            fixed = re.sub(r'\\(?!["\\/bfnrtu])', r"\\\\", json_str)
            data = json.loads(fixed)
        except json.JSONDecodeError:
            return None

    return data if isinstance(data, dict) else None


def clamp_confidence(value: Any, default: float = 0.5) -> float:
    """Coerce a model-reported confidence into [0, 1]."""
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return default
    if confidence != confidence:  # NaN
        return default
    return max(0.0, min(1.0, confidence))


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, message: str, provider: str = "", raw_response: str = "") -> None:
        super().__init__(message)
        self.provider = provider
        self.raw_response = raw_response
