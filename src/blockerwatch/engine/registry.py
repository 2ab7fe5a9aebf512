"""In-memory blocker table and recent-error ring.

The registry is the only owner of blocker records. Every write goes
through a single lock, and readers only ever receive frozen snapshots,
so no caller can observe or cause a partially-updated record.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter, deque
from datetime import datetime, timedelta
from typing import Callable

from blockerwatch.domain.models import Blocker, BlockerStats, utcnow

logger = logging.getLogger(__name__)

DEFAULT_RING_SIZE = 10
DEFAULT_RESOLVED_LIMIT = 50


class RegistryError(Exception):
    """Raised when a registry invariant would be violated."""


class RecentErrorRing:
    """Bounded FIFO of the most recent blocker categories."""

    def __init__(self, size: int = DEFAULT_RING_SIZE) -> None:
        self._items: deque[str] = deque(maxlen=size)

    def append(self, category: str) -> None:
        self._items.append(category)

    def snapshot(self) -> tuple[str, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)


class BlockerRegistry:
    """Owns every blocker record between creation and eviction.

    Args:
        ring_size: Capacity of the recent-error ring.
        clock: Returns the current UTC time (injectable for tests).
    """

    def __init__(
        self,
        ring_size: int = DEFAULT_RING_SIZE,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._blockers: dict[str, Blocker] = {}
        self._ring = RecentErrorRing(ring_size)
        self._clock = clock
        self._lock = threading.Lock()

    def create(self, blocker: Blocker) -> Blocker:
        """Store a new blocker and record its category in the ring.

        Raises:
            RegistryError: If a blocker with the same id already exists.
        """
        with self._lock:
            if blocker.id in self._blockers:
                raise RegistryError(f"Duplicate blocker id: {blocker.id}")
            self._blockers[blocker.id] = blocker
            self._ring.append(blocker.category.value)
        logger.info(
            "Blocker created: %s (%s, %.2f)",
            blocker.id, blocker.category.value, blocker.confidence,
        )
        return blocker

    def resolve(self, blocker_id: str, action: str | None = None) -> Blocker | None:
        """Mark a blocker resolved, optionally overwriting its suggested action.

        Unknown ids are logged and ignored. Resolving twice is harmless.
        """
        blocker, _ = self.resolve_transition(blocker_id, action)
        return blocker

    def resolve_transition(
        self, blocker_id: str, action: str | None = None
    ) -> tuple[Blocker | None, bool]:
        """Like ``resolve``, also reporting whether this call flipped the state.

        The flag is decided under the lock, so among concurrent resolves of
        one blocker exactly one sees True.
        """
        with self._lock:
            current = self._blockers.get(blocker_id)
            if current is None:
                logger.warning("Resolve ignored: unknown blocker %s", blocker_id)
                return None, False
            changes: dict[str, object] = {"resolved": True}
            if action:
                changes["suggested_action"] = action
            updated = current.model_copy(update=changes)
            self._blockers[blocker_id] = updated
            transitioned = not current.resolved
        if transitioned:
            logger.info("Blocker resolved: %s", blocker_id)
        return updated, transitioned

    def get(self, blocker_id: str) -> Blocker | None:
        with self._lock:
            return self._blockers.get(blocker_id)

    def list(self, active_only: bool = True) -> list[Blocker]:
        """Blockers ordered newest first."""
        with self._lock:
            blockers = [b for b in self._blockers.values() if not (active_only and b.resolved)]
        return sorted(blockers, key=lambda b: b.timestamp, reverse=True)

    def list_resolved(self, limit: int = DEFAULT_RESOLVED_LIMIT) -> list[Blocker]:
        with self._lock:
            blockers = [b for b in self._blockers.values() if b.resolved]
        blockers.sort(key=lambda b: b.timestamp, reverse=True)
        return blockers[: max(0, limit)]

    def stats(self) -> BlockerStats:
        with self._lock:
            blockers = list(self._blockers.values())
        return BlockerStats(
            total=len(blockers),
            resolved=sum(1 for b in blockers if b.resolved),
            by_category=dict(Counter(b.category.value for b in blockers)),
            by_severity=dict(Counter(b.severity.value for b in blockers)),
        )

    def evict_older_than(self, days: float) -> int:
        """Remove every blocker created before ``now - days``, resolved or not."""
        cutoff = self._clock() - timedelta(days=days)
        with self._lock:
            expired = [bid for bid, b in self._blockers.items() if b.timestamp < cutoff]
            for bid in expired:
                del self._blockers[bid]
        if expired:
            logger.info("Evicted %d blocker(s) older than %s days", len(expired), days)
        return len(expired)

    def recent_categories(self) -> tuple[str, ...]:
        with self._lock:
            return self._ring.snapshot()

    def __len__(self) -> int:
        with self._lock:
            return len(self._blockers)
