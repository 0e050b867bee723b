"""Real-time event publisher backed by Redis pub/sub with local fallback."""
import logging
from typing import Optional

from hangout.infra.messaging.redis_bus import RedisBus, redis_bus
from hangout.infra.realtime.ws_manager import TopicWsManager, ws_manager

logger = logging.getLogger(__name__)

REALTIME_EVENTS_CHANNEL = "realtime:events"


def make_envelope(topic: str, event_type: str, payload: dict) -> dict:
    return {"type": event_type, "topic": topic, "payload": payload}


class RealtimePublisher:
    """EventPublisher: publish to Redis; every instance (including this one) forwards to its sockets."""

    def __init__(self, bus: Optional[RedisBus] = None, manager: Optional[TopicWsManager] = None):
        self.bus = bus or redis_bus
        self.manager = manager or ws_manager

    async def publish(self, topic: str, event_type: str, payload: dict) -> None:
        envelope = make_envelope(topic, event_type, payload)
        try:
            await self.bus.publish(REALTIME_EVENTS_CHANNEL, envelope)
        except Exception as e:
            logger.warning("Realtime Redis publish failed, delivering locally: %s", e)
            await self._deliver(topic, envelope)

    async def handle_bus_message(self, data: dict) -> None:
        """Redis subscriber callback: forward an envelope to local sockets."""
        topic = data.get("topic")
        if not topic:
            logger.warning("Dropping realtime message without topic")
            return
        await self._deliver(topic, data)

    async def _deliver(self, topic: str, envelope: dict) -> None:
        await self.manager.broadcast_local(topic, envelope)
        # a member who left or was kicked stops receiving the room stream
        if envelope.get("type") == "member_left" and topic.startswith("room:"):
            user_id = (envelope.get("payload") or {}).get("userId")
            if user_id:
                await self.manager.drop_user(topic, user_id)

    async def run_subscriber(self) -> None:
        """Relay realtime:events to local sockets until cancelled."""
        await self.bus.subscribe_forever(REALTIME_EVENTS_CHANNEL, self.handle_bus_message)


realtime_publisher = RealtimePublisher()
