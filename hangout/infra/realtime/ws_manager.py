"""WebSocket manager for topic subscribers: topic -> set of (websocket, user_id).

Topics are user:{user_id} and room:{room_id}. Every message delivered to a
socket is the envelope {"type", "topic", "payload"}.
"""
import logging
from typing import Dict, Set

from fastapi import WebSocket, status

logger = logging.getLogger(__name__)


class TopicWsManager:
    """Topic-scoped WebSocket manager. Delivery is local to this instance."""

    def __init__(self) -> None:
        self.topics: Dict[str, Set[tuple[WebSocket, str]]] = {}

    async def connect(
        self, topic: str, user_id: str, websocket: WebSocket, already_accepted: bool = False
    ) -> None:
        """Add a connection to a topic. Call websocket.accept() if not already accepted."""
        if not already_accepted:
            await websocket.accept()
        self.topics.setdefault(topic, set()).add((websocket, user_id))
        logger.debug("WS subscribed user %s to %s", user_id, topic)

    async def disconnect(self, topic: str, user_id: str, websocket: WebSocket) -> None:
        """Remove a connection from a topic."""
        if topic in self.topics:
            self.topics[topic].discard((websocket, user_id))
            if not self.topics[topic]:
                del self.topics[topic]

    async def drop_user(self, topic: str, user_id: str) -> int:
        """Unsubscribe and close every socket user_id holds on topic. Returns sockets dropped."""
        dropped = [(ws, uid) for ws, uid in self.topics.get(topic, ()) if uid == user_id]
        for websocket, uid in dropped:
            await self.disconnect(topic, uid, websocket)
            try:
                await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            except (RuntimeError, ConnectionError) as e:
                logger.debug("WS already closed for %s user %s: %s", topic, uid, e)
        if dropped:
            logger.info("WS dropped %d socket(s) of user %s from %s", len(dropped), user_id, topic)
        return len(dropped)

    def subscriber_count(self, topic: str) -> int:
        return len(self.topics.get(topic, ()))

    async def broadcast_local(self, topic: str, message: dict) -> int:
        """Send message to all connections on this instance. Returns sockets reached."""
        if topic not in self.topics:
            return 0
        sent = 0
        disconnected = []
        for websocket, uid in self.topics[topic].copy():
            try:
                await websocket.send_json(message)
                sent += 1
            except (RuntimeError, ConnectionError) as e:
                logger.warning("WS connection closed for %s user %s: %s", topic, uid, e)
                disconnected.append((uid, websocket))
            except Exception as e:
                logger.exception("WS send failed for %s user %s: %s", topic, uid, e)
                disconnected.append((uid, websocket))
        for uid, ws in disconnected:
            await self.disconnect(topic, uid, ws)
        return sent


ws_manager = TopicWsManager()
