"""Outbound blocker notifications.

Consumers (dashboards, sync jobs, automation) subscribe here instead of
hooking into the detection call stack. Callbacks may be plain functions
or coroutines; queue subscribers get a bounded ``asyncio.Queue``.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from typing import Awaitable, Callable, Union

from blockerwatch.domain.models import BlockerEvent

logger = logging.getLogger(__name__)

Subscriber = Callable[[BlockerEvent], Union[None, Awaitable[None]]]


class NotificationBus:
    """Fan-out of blocker events to registered subscribers."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._queues: list[asyncio.Queue[BlockerEvent]] = []
        self._tasks: set[asyncio.Future] = set()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def subscribe_queue(self, maxsize: int = 100) -> asyncio.Queue[BlockerEvent]:
        """Return a queue that receives every event.

        When the queue is full the oldest event is dropped.
        """
        queue: asyncio.Queue[BlockerEvent] = asyncio.Queue(maxsize=maxsize)
        self._queues.append(queue)
        return queue

    def unsubscribe_queue(self, queue: asyncio.Queue[BlockerEvent]) -> None:
        if queue in self._queues:
            self._queues.remove(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers) + len(self._queues)

    @property
    def pending_deliveries(self) -> int:
        return len(self._tasks)

    async def publish(self, event: BlockerEvent) -> None:
        """Deliver an event without waiting on subscribers.

        Plain callbacks run inline. Coroutine callbacks are scheduled as
        tasks, so a slow consumer never holds up the publisher. Subscriber
        failures are logged, never raised.
        """
        for queue in list(self._queues):
            if queue.full():
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
                logger.debug("Notification queue full, dropped oldest event")
            queue.put_nowait(event)

        for callback in list(self._subscribers):
            try:
                result = callback(event)
            except Exception:
                logger.exception(
                    "Subscriber %r failed on %s event", callback, event.kind.value
                )
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(
                    functools.partial(self._on_delivered, callback, event.kind.value)
                )

    def _on_delivered(self, callback: Subscriber, kind: str, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug("Delivery of %s event to %r cancelled", kind, callback)
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Subscriber %r failed on %s event",
                callback, kind, exc_info=(type(error), error, error.__traceback__),
            )

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait for in-flight deliveries. Returns True if none remain."""
        if not self._tasks:
            return True
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        return not pending

    async def close(self, timeout: float = 1.0) -> None:
        """Give in-flight deliveries ``timeout`` seconds, then cancel the rest."""
        if await self.drain(timeout):
            return
        stuck = list(self._tasks)
        logger.warning("Cancelling %d undelivered notification(s)", len(stuck))
        for task in stuck:
            task.cancel()
        await asyncio.gather(*stuck, return_exceptions=True)
