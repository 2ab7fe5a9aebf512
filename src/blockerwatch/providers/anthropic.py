"""Anthropic Claude vision provider implementation.

Uses the Anthropic Python SDK to send screenshots to Claude models with
vision capability and parse the blocker indicators they report.
"""

from __future__ import annotations

import logging

from blockerwatch.domain.models import ImageBytes, VisionResult
from blockerwatch.providers.base import ProviderError
from blockerwatch.providers.vision import VISION_USER_PROMPT, MLLMVisionProvider

logger = logging.getLogger(__name__)


class AnthropicVisionProvider(MLLMVisionProvider):
    """Vision provider using Anthropic's Messages API.

    Example usage::

        provider = AnthropicVisionProvider(api_key="sk-ant-...")
        result = await provider.analyze(frame_bytes)
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-haiku-latest",
        max_tokens: int = 512,
        system_prompt: str | None = None,
    ) -> None:
        super().__init__(model=model, max_tokens=max_tokens, system_prompt=system_prompt)
        self._api_key = api_key
        self._client = None

    async def initialize(self) -> None:
        """Lazily initialize the Anthropic async client."""
        if self._client is not None:
            return
        if not self._api_key:
            raise ProviderError("No API key configured for vision provider", provider="anthropic")
        import anthropic

        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        logger.info("Initialized Anthropic vision client (model=%s)", self._model)

    async def analyze(self, image: ImageBytes) -> VisionResult:
        await self.initialize()
        b64_image = await self._encode(image)

        content = [
            {
                "type": "image",
                "source": {"type": "base64", "media_type": "image/png", "data": b64_image},
            },
            {"type": "text", "text": VISION_USER_PROMPT},
        ]

        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                system=self._system_prompt,
                messages=[{"role": "user", "content": content}],
            )
        except Exception as e:
            raise ProviderError(f"Anthropic API call failed: {e}", provider="anthropic") from e

        raw_text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        logger.debug("Vision raw response: %s", raw_text[:200])
        return self._parse_response(raw_text)

    async def health_check(self) -> bool:
        """Check that the API key is accepted."""
        try:
            await self.initialize()
            await self._client.models.list(limit=1)
            return True
        except Exception as e:
            logger.warning("Vision health check failed: %s", e)
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
