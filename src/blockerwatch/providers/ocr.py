"""PaddleOCR text extraction provider.

PaddleOCR is heavy to import and initialize, so both happen lazily in
``initialize()`` and all inference runs in a thread pool executor.
Install with the ``ocr`` extra: ``pip install blockerwatch[ocr]``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from blockerwatch.domain.models import ImageBytes, OCRResult
from blockerwatch.providers.base import OCRProvider, ProviderError
from blockerwatch.utils.imaging import decode_image

logger = logging.getLogger(__name__)


class PaddleOCRProvider(OCRProvider):
    """Local OCR using PaddleOCR. Nothing leaves the machine."""

    def __init__(self, lang: str = "en", use_angle_cls: bool = True) -> None:
        self._lang = lang
        self._use_angle_cls = use_angle_cls
        self._engine: Any | None = None

    async def initialize(self) -> None:
        if self._engine is not None:
            return
        loop = asyncio.get_running_loop()
        try:
            self._engine = await loop.run_in_executor(None, self._create_engine)
        except ImportError as e:
            raise ProviderError(
                "paddleocr is not installed (pip install blockerwatch[ocr])",
                provider="paddleocr",
            ) from e
        except Exception as e:
            raise ProviderError(f"PaddleOCR failed to initialize: {e}", provider="paddleocr") from e
        logger.info("PaddleOCR initialized (lang=%s)", self._lang)

    def _create_engine(self) -> Any:
        from paddleocr import PaddleOCR

        return PaddleOCR(use_angle_cls=self._use_angle_cls, lang=self._lang, show_log=False)

    async def extract(self, image: ImageBytes) -> OCRResult:
        if self._engine is None:
            await self.initialize()

        array = decode_image(image)
        if array is None:
            logger.debug("OCR skipped: frame is not a decodable image")
            return OCRResult.empty()

        loop = asyncio.get_running_loop()
        try:
            raw = await loop.run_in_executor(None, self._run_engine, array)
        except Exception as e:
            raise ProviderError(f"PaddleOCR inference failed: {e}", provider="paddleocr") from e
        finally:
            array.fill(0)

        return self._parse_results(raw)

    def _run_engine(self, array: Any) -> Any:
        return self._engine.ocr(array, cls=self._use_angle_cls)

    def _parse_results(self, results: Any) -> OCRResult:
        """Flatten PaddleOCR's nested [[box, (text, confidence)], ...] pages."""
        texts: list[str] = []
        total_confidence = 0.0

        for page in results or []:
            if not page:
                continue
            for line in page:
                if len(line) < 2:
                    continue
                text_info = line[1]
                if isinstance(text_info, (list, tuple)):
                    text = str(text_info[0])
                    confidence = float(text_info[1]) if len(text_info) > 1 else 0.5
                else:
                    text = str(text_info)
                    confidence = 0.5
                if not text.strip():
                    continue
                texts.append(text.strip())
                total_confidence += confidence

        if not texts:
            return OCRResult.empty()

        return OCRResult(
            text=" ".join(texts),
            confidence=max(0.0, min(1.0, total_confidence / len(texts))),
            languages=(self._lang,),
        )

    async def health_check(self) -> bool:
        return self._engine is not None
