"""Deterministic blocker signatures and the matcher that applies them."""

from blockerwatch.rules.catalog import DEFAULT_SIGNATURES
from blockerwatch.rules.matcher import SignalRuleMatcher, SignatureError

__all__ = ["DEFAULT_SIGNATURES", "SignalRuleMatcher", "SignatureError"]
