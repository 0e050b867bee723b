"""Outbound channels used by core services: real-time publish and notifications.

Both channels are best-effort mirrors of persisted state. A failure here is
logged and never propagated to the operation that triggered it; the state
change has already been committed by then.
"""
import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Protocol

logger = logging.getLogger(__name__)


class EventPublisher(Protocol):
    """Real-time publish collaborator (per-topic ordered, at-least-once)."""

    async def publish(self, topic: str, event_type: str, payload: dict) -> None:
        """Publish an event to a topic."""
        ...


class Notifier(Protocol):
    """Notification collaborator (inbox / push)."""

    async def notify(
        self,
        user_id: str,
        kind: str,
        title: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        """Deliver a notification to a user."""
        ...


async def publish_best_effort(
    publisher: Optional[EventPublisher], topic: str, event_type: str, payload: dict
) -> bool:
    """Publish and swallow failures. Returns True if the publisher accepted the event."""
    if publisher is None:
        return False
    try:
        await publisher.publish(topic, event_type, payload)
    except Exception as e:
        logger.warning("Realtime publish %s to %s failed: %s", event_type, topic, e)
        return False
    return True


async def notify_best_effort(
    notifier: Optional[Notifier],
    user_id: str,
    kind: str,
    title: str,
    message: str,
    data: Optional[dict[str, Any]] = None,
) -> bool:
    """Notify and swallow failures. Returns True on delivery."""
    if notifier is None:
        return False
    try:
        await notifier.notify(user_id, kind, title, message, data)
    except Exception as e:
        logger.warning("Notification %s to user %s failed: %s", kind, user_id, e)
        return False
    return True


class KeyedLock:
    """Per-key asyncio locks, e.g. one per room id.

    Locks are created lazily and dropped once nobody holds or waits on them.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                self._waiters.pop(key, None)
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)
