"""OpenAI-compatible vision provider implementation.

Works with OpenAI, OpenRouter, and any OpenAI-compatible API
by setting a custom base_url.
"""

from __future__ import annotations

import logging

from blockerwatch.domain.models import ImageBytes, VisionResult
from blockerwatch.providers.base import ProviderError
from blockerwatch.providers.vision import VISION_USER_PROMPT, MLLMVisionProvider

logger = logging.getLogger(__name__)


class OpenAIVisionProvider(MLLMVisionProvider):
    """Vision provider using OpenAI's chat completions API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        max_tokens: int = 512,
        system_prompt: str | None = None,
    ) -> None:
        super().__init__(model=model, max_tokens=max_tokens, system_prompt=system_prompt)
        self._api_key = api_key
        self._base_url = base_url
        self._client = None

    async def initialize(self) -> None:
        """Lazily initialize the OpenAI async client."""
        if self._client is not None:
            return
        if not self._api_key:
            raise ProviderError("No API key configured for vision provider", provider="openai")
        from openai import AsyncOpenAI

        kwargs = {"api_key": self._api_key}
        if self._base_url:
            kwargs["base_url"] = self._base_url
        self._client = AsyncOpenAI(**kwargs)
        logger.info("Initialized OpenAI vision client (model=%s, base_url=%s)", self._model, self._base_url)

    async def analyze(self, image: ImageBytes) -> VisionResult:
        await self.initialize()
        b64_image = await self._encode(image)

        messages = [
            {"role": "system", "content": self._system_prompt},
            {
                "role": "user",
                "content": [
                    {
                        "type": "image_url",
                        "image_url": {
                            "url": f"data:image/png;base64,{b64_image}",
                            "detail": "low",
                        },
                    },
                    {"type": "text", "text": VISION_USER_PROMPT},
                ],
            },
        ]

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                max_tokens=self._max_tokens,
                messages=messages,
            )
        except Exception as e:
            raise ProviderError(f"OpenAI API call failed: {e}", provider="openai") from e

        raw_text = response.choices[0].message.content or ""
        logger.debug("Vision raw response: %s", raw_text[:200])
        return self._parse_response(raw_text)

    async def health_check(self) -> bool:
        """Check if the API is reachable."""
        try:
            await self.initialize()
            await self._client.models.list()
            return True
        except Exception as e:
            logger.warning("Vision health check failed: %s", e)
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
