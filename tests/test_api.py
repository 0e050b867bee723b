"""HTTP API tests: auth, error mapping and the main flows, against SQLite."""
import pytest
from httpx import ASGITransport, AsyncClient

from hangout.api.deps import get_db, get_publisher
from hangout.infra.security.jwt import create_access_token
from hangout.main import app


@pytest.fixture
async def client(session_factory, publisher):
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_publisher] = lambda: publisher
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


async def test_health(client):
    for path in ("/health", "/v1/health"):
        response = await client.get(path)
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


async def test_requires_token(client, make_user):
    assert (await client.get("/v1/friends")).status_code == 401
    bad = await client.get("/v1/friends", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401

    # valid signature, unknown user
    ghost = await client.get("/v1/friends", headers={"Authorization": f"Bearer {create_access_token('ghost')}"})
    assert ghost.status_code == 401


async def test_friend_flow(client, make_user, publisher):
    kim, lee = await make_user("kim"), await make_user("lee")

    sent = await client.post("/v1/friends/requests", json={"user_id": lee.id}, headers=auth(kim))
    assert sent.status_code == 200
    friendship_id = sent.json()["id"]
    assert sent.json()["status"] == "pending"

    pending = await client.get("/v1/friends/requests", headers=auth(lee))
    assert [p["from_user_id"] for p in pending.json()] == [kim.id]

    accepted = await client.put(
        f"/v1/friends/requests/{friendship_id}", json={"decision": "accept"}, headers=auth(lee)
    )
    assert accepted.json()["status"] == "accepted"

    again = await client.put(
        f"/v1/friends/requests/{friendship_id}", json={"decision": "reject"}, headers=auth(lee)
    )
    assert again.status_code == 400
    assert again.json()["kind"] == "InvalidState"

    friends = await client.get("/v1/friends", headers=auth(kim))
    assert [f["id"] for f in friends.json()] == [lee.id]

    assert (await client.delete(f"/v1/friends/{lee.id}", headers=auth(kim))).json() == {"ok": True}
    missing = await client.delete(f"/v1/friends/{lee.id}", headers=auth(kim))
    assert missing.status_code == 404
    assert missing.json()["kind"] == "NotFound"
    assert publisher.of_type("friend_request")


async def test_error_kinds(client, make_user):
    kim, lee = await make_user("kim"), await make_user("lee")

    own = await client.post("/v1/friends/requests", json={"user_id": kim.id}, headers=auth(kim))
    assert (own.status_code, own.json()["kind"]) == (400, "InvalidInput")

    room = (await client.post("/v1/rooms", json={"name": "Solo", "max_members": 1}, headers=auth(kim))).json()
    full = await client.post(f"/v1/rooms/{room['room_id']}/join", headers=auth(lee))
    assert (full.status_code, full.json()["kind"]) == (400, "Full")

    # capacity is checked before membership
    dup = await client.post(f"/v1/rooms/{room['room_id']}/join", headers=auth(kim))
    assert dup.json()["kind"] == "Full"

    forbidden = await client.post(f"/v1/rooms/{room['room_id']}/messages", json={"text": "hi"}, headers=auth(lee))
    assert (forbidden.status_code, forbidden.json()["kind"]) == (403, "Forbidden")

    invalid = await client.post("/v1/rooms", json={"max_members": 3}, headers=auth(kim))
    assert invalid.status_code == 422


async def test_room_and_message_flow(client, make_user, publisher):
    kim, lee = await make_user("kim"), await make_user("lee")

    created = await client.post("/v1/rooms", json={"name": "Hangout", "max_members": 5}, headers=auth(kim))
    assert created.status_code == 200
    room = created.json()
    assert room["member_count"] == 1

    joined = await client.post(f"/v1/rooms/{room['room_id']}/join", headers=auth(lee))
    assert joined.json()["is_active"] is True
    members = await client.get(f"/v1/rooms/{room['room_id']}/members", headers=auth(kim))
    assert {m["username"] for m in members.json()} == {"kim", "lee"}

    posted = await client.post(
        f"/v1/rooms/{room['room_id']}/messages", json={"text": "hello room"}, headers=auth(lee)
    )
    message = posted.json()
    assert message["sequence"] == 1
    assert message["room_id"] == room["room_id"]

    reacted = await client.post(
        f"/v1/messages/{message['id']}/reactions", json={"emoji": "👋"}, headers=auth(kim)
    )
    assert reacted.json()["reactions"] == [{"user_id": kim.id, "emoji": "👋"}]

    history = await client.get(f"/v1/rooms/{room['room_id']}/messages", headers=auth(kim))
    assert [m["text"] for m in history.json()] == ["hello room"]
    assert history.json()[0]["reactions"] == [{"user_id": kim.id, "emoji": "👋"}]

    left = await client.post(f"/v1/rooms/{room['room_id']}/leave", headers=auth(lee))
    assert left.json()["is_active"] is False
    assert (await client.get(f"/v1/rooms/{room['room_id']}", headers=auth(kim))).json()["member_count"] == 1

    event_types = [e[1] for e in publisher.on_topic(f"room:{room['room_id']}")]
    assert event_types == ["member_joined", "message", "reaction_updated", "member_left"]


async def test_presence_and_live(client, make_user):
    kim, lee = await make_user("kim"), await make_user("lee")

    before = await client.get(f"/v1/presence/{kim.id}", headers=auth(lee))
    assert before.json()["is_online"] is False
    assert (await client.post("/v1/presence/touch", headers=auth(kim))).json()["ok"] is True
    after = await client.get(f"/v1/presence/{kim.id}", headers=auth(lee))
    assert after.json()["is_online"] is True

    live = (await client.post("/v1/live", json={"title": "Jam"}, headers=auth(kim))).json()
    assert live["is_live"] is True
    second = await client.post("/v1/live", json={}, headers=auth(kim))
    assert second.json()["kind"] == "AlreadyExists"

    foreign = await client.post(f"/v1/live/{live['id']}/heartbeat", headers=auth(lee))
    assert foreign.status_code == 403
    assert (await client.post(f"/v1/live/{live['id']}/heartbeat", headers=auth(kim))).status_code == 200

    discover = await client.get("/v1/live", params={"scope": "discover"}, headers=auth(lee))
    assert [s["id"] for s in discover.json()] == [live["id"]]

    stopped = await client.post(f"/v1/live/{live['id']}/stop", headers=auth(kim))
    assert stopped.json()["closed"] == 1


async def test_direct_messages_and_notifications(client, make_user):
    kim, lee = await make_user("kim"), await make_user("lee")

    blocked = await client.post("/v1/messages/direct", json={"to_user_id": lee.id, "text": "hi"}, headers=auth(kim))
    assert blocked.status_code == 403

    request = (await client.post("/v1/friends/requests", json={"user_id": lee.id}, headers=auth(kim))).json()
    inbox = await client.get("/v1/notifications", headers=auth(lee))
    assert [n["type"] for n in inbox.json()] == ["friend_request"]
    assert (await client.get("/v1/notifications/unread-count", headers=auth(lee))).json() == {"unread": 1}

    await client.put(f"/v1/friends/requests/{request['id']}", json={"decision": "accept"}, headers=auth(lee))
    dm = await client.post("/v1/messages/direct", json={"to_user_id": lee.id, "text": "hi"}, headers=auth(kim))
    assert dm.status_code == 200

    thread = await client.get(f"/v1/messages/direct/{kim.id}", headers=auth(lee))
    assert [m["text"] for m in thread.json()] == ["hi"]
    read = await client.post(f"/v1/messages/direct/{kim.id}/read", headers=auth(lee))
    assert read.json() == {"ok": True, "updated": 1}

    assert (await client.post("/v1/notifications/read-all", headers=auth(lee))).json()["updated"] == 1


async def test_register_device(client, make_user):
    kim = await make_user("kim")

    first = await client.post("/v1/devices", json={"push_token": "tok-1", "platform": "ios"}, headers=auth(kim))
    again = await client.post("/v1/devices", json={"push_token": "tok-1", "platform": "android"}, headers=auth(kim))
    assert first.json()["id"] == again.json()["id"]

    bad = await client.post("/v1/devices", json={"push_token": "tok-2", "platform": "web"}, headers=auth(kim))
    assert bad.status_code == 400


async def test_private_room_forbidden_to_outsiders(client, make_user):
    kim, lee = await make_user("kim"), await make_user("lee")
    created = await client.post("/v1/rooms", json={"name": "Secret", "privacy": "private"}, headers=auth(kim))
    slug = created.json()["room_id"]

    for path in (f"/v1/rooms/{slug}", f"/v1/rooms/{slug}/members"):
        outsider = await client.get(path, headers=auth(lee))
        assert (outsider.status_code, outsider.json()["kind"]) == (403, "Forbidden")
        assert (await client.get(path, headers=auth(kim))).status_code == 200


async def test_conversations(client, make_user):
    kim, lee, max_ = await make_user("kim"), await make_user("lee"), await make_user("max")
    for friend in (lee, max_):
        request = (await client.post("/v1/friends/requests", json={"user_id": friend.id}, headers=auth(kim))).json()
        await client.put(f"/v1/friends/requests/{request['id']}", json={"decision": "accept"}, headers=auth(friend))
    await client.post("/v1/messages/direct", json={"to_user_id": kim.id, "text": "yo"}, headers=auth(lee))

    response = await client.get("/v1/messages/conversations", headers=auth(kim))

    assert response.status_code == 200
    conversations = response.json()
    assert [c["username"] for c in conversations] == ["lee", "max"]
    assert conversations[0]["last_message"]["text"] == "yo"
    assert conversations[0]["unread_count"] == 1
    assert conversations[1]["last_message"] is None
    assert (await client.get("/v1/messages/conversations")).status_code == 401
