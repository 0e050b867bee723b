"""Room, message and reaction round trip through the services and the topic fan-out."""
from hangout.domain.chat.models import RoomTarget
from hangout.domain.common.types import room_topic
from hangout.domain.rooms.models import RoomRole, RoomSpec
from hangout.infra.realtime.publisher import RealtimePublisher
from hangout.infra.realtime.ws_manager import TopicWsManager


class DownBus:
    async def publish(self, channel, message):
        raise ConnectionError("redis unavailable")


class RecordingSocket:
    def __init__(self):
        self.received: list[dict] = []

    async def accept(self):
        pass

    async def send_json(self, data):
        self.received.append(data)


async def test_room_message_and_reaction_round_trip(db_session, make_services, make_user):
    manager = TopicWsManager()
    svc = make_services(db_session, publisher=RealtimePublisher(bus=DownBus(), manager=manager))
    alice, bob = await make_user("alice"), await make_user("bob")

    room, owner_membership = await svc.rooms.create_room(alice.id, RoomSpec(name="Lounge"))
    assert owner_membership.role == RoomRole.ADMIN

    bob_socket = RecordingSocket()
    await manager.connect(room_topic(room.room_id), bob.id, bob_socket)

    membership = await svc.rooms.join_room(bob.id, room.room_id)
    assert membership.role == RoomRole.MEMBER

    message = await svc.chat.post_message(alice.id, RoomTarget(room_id=room.room_id), "hi")
    await svc.chat.toggle_reaction(message.id, bob.id, "👍")
    await svc.chat.toggle_reaction(message.id, bob.id, "👍")

    received = [(e["type"], e["payload"]) for e in bob_socket.received]
    assert [t for t, _ in received] == ["member_joined", "message", "reaction_updated", "reaction_updated"]
    _, posted = received[1]
    assert (posted["text"], posted["authorId"]) == ("hi", alice.id)
    assert received[2][1]["reactions"] == [{"userId": bob.id, "emoji": "👍"}]
    assert received[3][1]["reactions"] == []
    assert all(e["topic"] == room_topic(room.room_id) for e in bob_socket.received)
