"""Analysis providers for blockerwatch.

Provides narrow, provider-agnostic interfaces for the three detection
stages: OCR text extraction, visual classification, and language-model
reasoning, plus their concrete implementations.

Public API:
    OCRProvider / VisionProvider / LanguageModelProvider -- Abstract bases
    ProviderError -- Raised by any provider call
    PaddleOCRProvider -- Local OCR
    OpenAIVisionProvider -- OpenAI / OpenRouter vision
    AnthropicVisionProvider -- Claude vision
    OllamaProvider -- Local language model
"""

from blockerwatch.providers.base import (
    AnalysisProvider,
    LanguageModelProvider,
    OCRProvider,
    ProviderError,
    VisionProvider,
)

__all__ = [
    "AnalysisProvider",
    "AnthropicVisionProvider",
    "LanguageModelProvider",
    "OCRProvider",
    "OllamaProvider",
    "OpenAIVisionProvider",
    "PaddleOCRProvider",
    "ProviderError",
    "VisionProvider",
]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require external deps."""
    if name == "PaddleOCRProvider":
        from blockerwatch.providers.ocr import PaddleOCRProvider
        return PaddleOCRProvider
    if name == "OpenAIVisionProvider":
        from blockerwatch.providers.openai import OpenAIVisionProvider
        return OpenAIVisionProvider
    if name == "AnthropicVisionProvider":
        from blockerwatch.providers.anthropic import AnthropicVisionProvider
        return AnthropicVisionProvider
    if name == "OllamaProvider":
        from blockerwatch.providers.llm import OllamaProvider
        return OllamaProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
