"""Tests for the Ollama language model provider using a stubbed HTTP server."""

from __future__ import annotations

import json

import httpx
import pytest

from blockerwatch.domain.models import BlockerAnalysisRequest, BlockerCategory, Severity
from blockerwatch.providers.base import ProviderError
from blockerwatch.providers.llm import (
    INSIGHTS_FAILED,
    INSIGHTS_UNAVAILABLE,
    OllamaProvider,
    normalize_category,
    normalize_severity,
)

REQUEST = BlockerAnalysisRequest(
    ocr_text="error TS2304: Cannot find name 'foo'",
    window_name="VS Code",
    activity_duration_ms=45000,
    recent_categories=("build_error", "timeout"),
)


def _server(generate_response: str | None = None, status: int = 200, tags: list[str] | None = None):
    """Build a MockTransport answering /api/generate and /api/tags."""
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/tags":
            models = [{"name": n} for n in (tags or ["phi3:3.8b"])]
            return httpx.Response(status, json={"models": models})
        if request.url.path == "/api/generate":
            seen.append(json.loads(request.content))
            return httpx.Response(status, json={"response": generate_response or ""})
        return httpx.Response(404)

    return httpx.MockTransport(handler), seen


class TestAnalyzeBlocker:
    @pytest.mark.asyncio
    async def test_parses_json_response(self) -> None:
        raw = (
            'Here is my analysis:\n{"blockerType": "build_error", "severity": "high", '
            '"suggestedAction": "Declare foo before use", "confidence": 0.82}'
        )
        transport, seen = _server(raw)
        provider = OllamaProvider(transport=transport)

        result = await provider.analyze_blocker(REQUEST)

        assert result.category is BlockerCategory.BUILD_ERROR
        assert result.severity is Severity.HIGH
        assert result.suggested_action == "Declare foo before use"
        assert result.confidence == pytest.approx(0.82)
        await provider.close()

    @pytest.mark.asyncio
    async def test_sends_prompt_and_sampling_options(self) -> None:
        transport, seen = _server('{"blockerType": "other"}')
        provider = OllamaProvider(model="llama3", temperature=0.3, num_predict=200, transport=transport)

        await provider.analyze_blocker(REQUEST)

        body = seen[0]
        assert body["model"] == "llama3"
        assert body["stream"] is False
        assert body["options"] == {"temperature": 0.3, "num_predict": 200}
        assert "Window: VS Code" in body["prompt"]
        assert "Activity Duration: 45s" in body["prompt"]
        assert "Recent Errors: build_error, timeout" in body["prompt"]
        assert "Cannot find name" in body["prompt"]

    @pytest.mark.asyncio
    async def test_missing_fields_use_defaults(self) -> None:
        transport, _ = _server('{"blockerType": "nonsense", "severity": "apocalyptic"}')
        provider = OllamaProvider(transport=transport)

        result = await provider.analyze_blocker(REQUEST)

        assert result.category is BlockerCategory.OTHER
        assert result.severity is Severity.MEDIUM
        assert result.suggested_action == "Check console logs for more details"
        assert result.confidence == 0.5

    @pytest.mark.asyncio
    async def test_confidence_is_clamped(self) -> None:
        transport, _ = _server('{"blockerType": "timeout", "confidence": 7}')
        provider = OllamaProvider(transport=transport)

        assert (await provider.analyze_blocker(REQUEST)).confidence == 1.0

    @pytest.mark.asyncio
    async def test_non_json_response_raises(self) -> None:
        transport, _ = _server("I think the developer is fine.")
        provider = OllamaProvider(transport=transport)

        with pytest.raises(ProviderError) as exc_info:
            await provider.analyze_blocker(REQUEST)
        assert exc_info.value.provider == "ollama"
        assert "developer is fine" in exc_info.value.raw_response

    @pytest.mark.asyncio
    async def test_http_error_raises(self) -> None:
        transport, _ = _server("{}", status=500)
        provider = OllamaProvider(transport=transport)

        with pytest.raises(ProviderError):
            await provider.analyze_blocker(REQUEST)


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_initialize_and_list_models(self) -> None:
        transport, _ = _server(tags=["phi3:3.8b", "llama3:8b"])
        provider = OllamaProvider(transport=transport)

        await provider.initialize()

        assert await provider.health_check() is True
        assert await provider.list_models() == ["phi3:3.8b", "llama3:8b"]

    @pytest.mark.asyncio
    async def test_initialize_fails_when_unreachable(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = OllamaProvider(transport=httpx.MockTransport(refuse))

        with pytest.raises(ProviderError):
            await provider.initialize()
        assert await provider.health_check() is False
        assert await provider.list_models() == []

    @pytest.mark.asyncio
    async def test_insights(self) -> None:
        transport, seen = _server("  Run the build with --verbose.  ")
        provider = OllamaProvider(transport=transport)

        text = await provider.insights("build_error", "tsc failing")

        assert text == "Run the build with --verbose."
        assert seen[0]["options"] == {"temperature": 0.2, "num_predict": 300}
        assert "Blocker: build_error" in seen[0]["prompt"]

    @pytest.mark.asyncio
    async def test_insights_when_server_down(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = OllamaProvider(transport=httpx.MockTransport(refuse))

        assert await provider.insights("timeout", "ctx") == INSIGHTS_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_insights_when_generation_fails(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/tags":
                return httpx.Response(200, json={"models": []})
            return httpx.Response(500)

        provider = OllamaProvider(transport=httpx.MockTransport(handler))

        assert await provider.insights("timeout", "ctx") == INSIGHTS_FAILED


class TestNormalization:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("build_error", BlockerCategory.BUILD_ERROR),
            ("Build Error", BlockerCategory.BUILD_ERROR),
            ("circular-dependency", BlockerCategory.CIRCULAR_DEPENDENCY),
            ("RESOURCE", BlockerCategory.RESOURCE_EXHAUSTION),
            ("mystery", BlockerCategory.OTHER),
            (None, BlockerCategory.OTHER),
        ],
    )
    def test_category(self, raw, expected) -> None:
        assert normalize_category(raw) is expected

    def test_severity(self) -> None:
        assert normalize_severity("CRITICAL") is Severity.CRITICAL
        assert normalize_severity(3) is Severity.MEDIUM
