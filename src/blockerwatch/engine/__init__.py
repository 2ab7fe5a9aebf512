"""Detection engine for blockerwatch.

Public API:
    BlockerDetector -- Full detection pipeline and blocker query surface
    ProviderOrchestrator -- Timeout-bounded provider fan-out
    ConsensusScorer -- Weighted signal consensus
    BlockerRegistry -- Owner of blocker records
    NotificationBus -- Blocker created/resolved events
"""

from blockerwatch.engine.detector import BlockerDetector
from blockerwatch.engine.notifications import NotificationBus
from blockerwatch.engine.orchestrator import ProviderOrchestrator
from blockerwatch.engine.registry import BlockerRegistry, RecentErrorRing, RegistryError
from blockerwatch.engine.scoring import ConsensusScorer

__all__ = [
    "BlockerDetector",
    "BlockerRegistry",
    "ConsensusScorer",
    "NotificationBus",
    "ProviderOrchestrator",
    "RecentErrorRing",
    "RegistryError",
]
