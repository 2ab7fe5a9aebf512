"""Local language model provider backed by an Ollama server.

Talks to Ollama's REST API (``/api/generate`` and ``/api/tags``) over
httpx. Nothing is sent to a hosted service.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from blockerwatch.domain.models import (
    BlockerAnalysisRequest,
    BlockerCategory,
    LLMAnalysis,
    Severity,
)
from blockerwatch.providers.base import (
    LanguageModelProvider,
    ProviderError,
    clamp_confidence,
    extract_json_object,
)

logger = logging.getLogger(__name__)

DEFAULT_ACTION = "Check console logs for more details"
INSIGHTS_UNAVAILABLE = "LLM not available - ensure Ollama is running"
INSIGHTS_FAILED = "Unable to generate insights - LLM service unavailable"

PROMPT_TEXT_LIMIT = 500

ANALYSIS_PROMPT = """You are an assistant that notices when a software developer is stuck.

Context:
- Window: {window_name}
- Activity Duration: {duration_s:g}s
- Screen Text: {screen_text}
- Recent Errors: {recent_errors}

Analyze this situation and respond with ONLY valid JSON (no markdown, no code fences):
{{
  "blockerType": "build_error|timeout|circular_dep|permission|resource|other",
  "severity": "low|medium|high|critical",
  "suggestedAction": "Brief actionable suggestion (1-2 sentences)",
  "confidence": 0.0 to 1.0
}}
"""

INSIGHTS_PROMPT = """As a senior developer, explain this blocker and provide 2-3 specific solutions:
Blocker: {category}
Context: {context}

Keep response under 200 words.
"""

_CATEGORY_ALIASES = {
    "circular_dependency": BlockerCategory.CIRCULAR_DEPENDENCY,
    "resource_exhaustion": BlockerCategory.RESOURCE_EXHAUSTION,
    "permission_error": BlockerCategory.PERMISSION,
    "build": BlockerCategory.BUILD_ERROR,
}


def normalize_category(value: Any) -> BlockerCategory:
    """Map a model-reported blocker type onto a known category."""
    if not isinstance(value, str):
        return BlockerCategory.OTHER
    key = value.strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return BlockerCategory(key)
    except ValueError:
        return _CATEGORY_ALIASES.get(key, BlockerCategory.OTHER)


def normalize_severity(value: Any) -> Severity:
    if isinstance(value, str):
        try:
            return Severity(value.strip().lower())
        except ValueError:
            pass
    return Severity.MEDIUM


class OllamaProvider(LanguageModelProvider):
    """Language model provider using a local Ollama server.

    Args:
        base_url: Ollama server URL.
        model: Model tag, e.g. ``phi3:3.8b``.
        temperature: Sampling temperature for blocker analysis.
        num_predict: Maximum tokens generated per analysis.
        timeout: HTTP timeout in seconds.
        transport: Optional httpx transport (used to stub the server in tests).
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "phi3:3.8b",
        temperature: float = 0.3,
        num_predict: int = 200,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._temperature = temperature
        self._num_predict = num_predict
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._ready = False

    @property
    def model(self) -> str:
        return self._model

    def set_model(self, model: str) -> None:
        self._model = model

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def initialize(self) -> None:
        """Verify the Ollama server is reachable."""
        client = self._ensure_client()
        try:
            resp = await client.get("/api/tags")
            resp.raise_for_status()
        except httpx.HTTPError as e:
            self._ready = False
            raise ProviderError(
                f"Ollama not reachable at {self._base_url}: {e}", provider="ollama"
            ) from e
        self._ready = True
        logger.info("Connected to Ollama at %s (model=%s)", self._base_url, self._model)

    async def analyze_blocker(self, request: BlockerAnalysisRequest) -> LLMAnalysis:
        prompt = ANALYSIS_PROMPT.format(
            window_name=request.window_name,
            duration_s=request.activity_duration_ms / 1000,
            screen_text=request.ocr_text[:PROMPT_TEXT_LIMIT],
            recent_errors=", ".join(request.recent_categories),
        )
        raw_text = await self._generate(prompt, self._temperature, self._num_predict)
        logger.debug("LLM raw response: %s", raw_text[:200])
        return self._parse_analysis(raw_text)

    def _parse_analysis(self, raw_text: str) -> LLMAnalysis:
        data = extract_json_object(raw_text)
        if data is None:
            raise ProviderError(
                "Invalid JSON in LLM response", provider="ollama", raw_response=raw_text
            )
        action = data.get("suggestedAction", data.get("suggested_action"))
        return LLMAnalysis(
            category=normalize_category(data.get("blockerType", data.get("category"))),
            severity=normalize_severity(data.get("severity")),
            suggested_action=str(action).strip() if action else DEFAULT_ACTION,
            confidence=clamp_confidence(data.get("confidence"), default=0.5),
        )

    async def insights(self, category: str, context: str) -> str:
        if not self._ready:
            try:
                await self.initialize()
            except ProviderError:
                return INSIGHTS_UNAVAILABLE
        prompt = INSIGHTS_PROMPT.format(category=category, context=context)
        try:
            return (await self._generate(prompt, 0.2, 300)).strip()
        except ProviderError as e:
            logger.warning("Insights generation failed: %s", e)
            return INSIGHTS_FAILED

    async def _generate(self, prompt: str, temperature: float, num_predict: int) -> str:
        client = self._ensure_client()
        payload = {
            "model": self._model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": num_predict},
        }
        try:
            resp = await client.post("/api/generate", json=payload)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPError as e:
            raise ProviderError(f"Ollama request failed: {e}", provider="ollama") from e
        except ValueError as e:
            raise ProviderError(
                "Ollama returned a non-JSON body", provider="ollama", raw_response=resp.text
            ) from e
        return str(body.get("response", ""))

    async def list_models(self) -> list[str]:
        """Names of the models installed on the Ollama server."""
        try:
            resp = await self._ensure_client().get("/api/tags")
            resp.raise_for_status()
            models = resp.json().get("models") or []
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Could not list Ollama models: %s", e)
            return []
        return [m["name"] for m in models if isinstance(m, dict) and "name" in m]

    async def health_check(self) -> bool:
        try:
            resp = await self._ensure_client().get("/api/tags")
            return resp.status_code == 200
        except httpx.HTTPError as e:
            logger.warning("LLM health check failed: %s", e)
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self._ready = False
