"""Deterministic signature matching against extracted screen text."""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable

from blockerwatch.config.settings import DEFAULT_DEVELOPER_WINDOWS
from blockerwatch.domain.models import BlockerSignature, RuleMatch
from blockerwatch.rules.catalog import DEFAULT_SIGNATURES

logger = logging.getLogger(__name__)

DEVELOPER_WINDOW_MULTIPLIER = 1.2


class SignalRuleMatcher:
    """Matches OCR text against an ordered catalog of blocker signatures.

    The catalog is read-mostly. Writers swap in a new tuple under a lock,
    so ``match`` always iterates a consistent snapshot without locking.
    """

    def __init__(
        self,
        signatures: Iterable[BlockerSignature] = DEFAULT_SIGNATURES,
        developer_windows: Iterable[str] = DEFAULT_DEVELOPER_WINDOWS,
    ) -> None:
        self._lock = threading.Lock()
        self._signatures: tuple[BlockerSignature, ...] = ()
        self._developer_windows = tuple(w.lower() for w in developer_windows)
        for signature in signatures:
            self.add(signature)

    def match(
        self,
        text: str,
        activity_duration_ms: int,
        window_title: str,
    ) -> RuleMatch:
        """Return the first signature that activates for this text.

        A signature activates when at least one of its signals occurs in
        ``text`` and the activity has lasted at least its minimum
        duration.
        """
        lower_text = text.lower()
        multiplier = self.window_multiplier(window_title)

        for signature in self._signatures:
            if activity_duration_ms < signature.min_duration_ms:
                continue
            matched = tuple(s for s in signature.signals if s.lower() in lower_text)
            if not matched:
                continue
            confidence = min(
                1.0,
                signature.confidence * multiplier * (len(matched) / len(signature.signals)),
            )
            logger.debug(
                "Signature %s matched %d/%d signals (confidence %.3f)",
                signature.id, len(matched), len(signature.signals), confidence,
            )
            return RuleMatch(
                detected=True,
                signature=signature,
                confidence=confidence,
                matched_signals=matched,
            )

        return RuleMatch(detected=False, confidence=0.0)

    def window_multiplier(self, window_title: str) -> float:
        """1.2 for known developer tools, 1.0 otherwise."""
        lower_window = window_title.lower()
        if any(keyword in lower_window for keyword in self._developer_windows):
            return DEVELOPER_WINDOW_MULTIPLIER
        return 1.0

    # -- catalog management ------------------------------------------------

    def signatures(self) -> list[BlockerSignature]:
        """Ordered snapshot of the catalog."""
        return list(self._signatures)

    def get(self, signature_id: str) -> BlockerSignature | None:
        for signature in self._signatures:
            if signature.id == signature_id:
                return signature
        return None

    def add(self, signature: BlockerSignature) -> None:
        """Append a signature to the end of the catalog.

        Raises:
            SignatureError: If a signature with the same id exists.
        """
        with self._lock:
            if any(s.id == signature.id for s in self._signatures):
                raise SignatureError(f"Signature '{signature.id}' already exists")
            self._signatures = self._signatures + (signature,)
        logger.debug("Added signature %s", signature.id)

    def remove(self, signature_id: str) -> bool:
        with self._lock:
            remaining = tuple(s for s in self._signatures if s.id != signature_id)
            if len(remaining) == len(self._signatures):
                return False
            self._signatures = remaining
        logger.debug("Removed signature %s", signature_id)
        return True

    def update(self, signature_id: str, **changes: Any) -> bool:
        """Replace fields of a signature in place, keeping its position.

        The updated signature is re-validated. Changing the id is not
        allowed.
        """
        if "id" in changes and changes["id"] != signature_id:
            raise SignatureError("Signature id cannot be changed")
        with self._lock:
            for index, current in enumerate(self._signatures):
                if current.id == signature_id:
                    updated = BlockerSignature.model_validate(
                        {**current.model_dump(), **changes}
                    )
                    self._signatures = (
                        self._signatures[:index] + (updated,) + self._signatures[index + 1:]
                    )
                    return True
        return False


class SignatureError(ValueError):
    """Raised when a catalog mutation is invalid."""
