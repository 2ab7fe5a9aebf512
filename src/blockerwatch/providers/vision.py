"""Shared prompt and response parsing for multimodal vision providers."""

from __future__ import annotations

import asyncio
import logging

from blockerwatch.domain.models import ImageBytes, VisionResult
from blockerwatch.providers.base import (
    ProviderError,
    VisionProvider,
    clamp_confidence,
    extract_json_object,
)
from blockerwatch.utils.imaging import to_base64_png

logger = logging.getLogger(__name__)

VISION_SYSTEM_PROMPT = """You are looking at a screenshot of a software developer's screen.
Decide whether the developer appears to be blocked.

Look for:
1. Error messages, red error text, failed build or test output
2. Stack traces or tracebacks
3. Loading spinners, progress bars, or "waiting" indicators that suggest a hang

Respond ONLY with JSON (no markdown, no explanation):
{
    "has_error": true or false,
    "has_stack_trace": true or false,
    "has_loading_indicator": true or false,
    "description": "one sentence describing what is on screen",
    "confidence": 0.0 to 1.0
}"""

VISION_USER_PROMPT = "Classify the blocker indicators visible on this screen."


class MLLMVisionProvider(VisionProvider):
    """Base for vision providers backed by a hosted multimodal model."""

    def __init__(self, model: str, max_tokens: int = 512, system_prompt: str | None = None) -> None:
        self._model = model
        self._max_tokens = max_tokens
        self._system_prompt = system_prompt or VISION_SYSTEM_PROMPT

    @property
    def model(self) -> str:
        return self._model

    async def _encode(self, image: ImageBytes) -> str:
        """Decode, resize and base64-encode a frame in the default executor."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, to_base64_png, image)
        except ValueError as e:
            raise ProviderError(str(e), provider=type(self).__name__) from e

    def _parse_response(self, raw_response: str) -> VisionResult:
        data = extract_json_object(raw_response)
        if data is None:
            raise ProviderError(
                "Failed to parse vision response as JSON",
                provider=type(self).__name__,
                raw_response=raw_response,
            )
        return VisionResult(
            has_error=_as_bool(data.get("has_error", data.get("hasError"))),
            has_stack_trace=_as_bool(data.get("has_stack_trace", data.get("hasStackTrace"))),
            has_loading_indicator=_as_bool(
                data.get("has_loading_indicator", data.get("hasLoadingIndicator"))
            ),
            description=str(data.get("description") or "Analysis completed"),
            confidence=clamp_confidence(data.get("confidence"), default=0.0),
        )


def _as_bool(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)
