"""Tests for the presence tracker and live sessions."""
import pytest

from hangout.domain.common.errors import (
    AlreadyExistsError,
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from hangout.domain.presence.models import LiveScope, LiveSessionPrivacy, is_within_window


async def test_online_window(db_session, make_services, make_user, clock):
    kim = await make_user("kim")
    presence = make_services(db_session).presence

    assert not await presence.is_online(kim.id)

    await presence.touch(kim.id)
    assert await presence.is_online(kim.id)

    clock.advance(119)
    assert await presence.is_online(kim.id)
    clock.advance(1)
    assert not await presence.is_online(kim.id)
    # a wider caller-chosen window still sees the user
    assert await presence.is_online(kim.id, window_seconds=300)


async def test_touch_is_last_write_wins(db_session, make_services, make_user, clock):
    kim = await make_user("kim")
    presence = make_services(db_session).presence

    first = await presence.touch(kim.id)
    clock.advance(30)
    second = await presence.touch(kim.id)

    status = await presence.get_status(kim.id)
    assert status.last_seen_at == second
    assert status.last_seen_at > first
    assert status.is_online


async def test_touch_and_status_for_unknown_user(db_session, make_services):
    presence = make_services(db_session).presence
    with pytest.raises(NotFoundError):
        await presence.touch("ghost")
    with pytest.raises(NotFoundError):
        await presence.get_status("ghost")
    assert not await presence.is_online("ghost")


def test_is_within_window_boundaries(clock):
    now = clock()
    clock.advance(-10)
    ten_seconds_ago = clock()
    assert is_within_window(ten_seconds_ago, 11, now)
    assert not is_within_window(ten_seconds_ago, 10, now)
    assert not is_within_window(None, 120, now)


async def test_start_live_session(db_session, make_services, make_user):
    kim = await make_user("kim")
    presence = make_services(db_session).presence

    live = await presence.start_live_session(kim.id)
    assert live.is_live
    assert live.title == "Kim's Stream"
    assert live.privacy == LiveSessionPrivacy.PUBLIC
    assert presence.is_session_live(live)

    with pytest.raises(AlreadyExistsError):
        await presence.start_live_session(kim.id, title="Again")


async def test_start_live_session_validates_privacy(db_session, make_services, make_user):
    kim = await make_user("kim")
    with pytest.raises(ValidationError):
        await make_services(db_session).presence.start_live_session(kim.id, privacy="everyone")


async def test_heartbeat_keeps_session_live(db_session, make_services, make_user, clock):
    kim = await make_user("kim")
    presence = make_services(db_session).presence
    live = await presence.start_live_session(kim.id, title="Coding")

    clock.advance(100)
    await presence.heartbeat(live.id, kim.id)
    clock.advance(100)
    refreshed = await presence.live_session_repo.get_by_id(live.id)
    assert presence.is_session_live(refreshed)

    clock.advance(30)
    assert not presence.is_session_live(refreshed)


async def test_heartbeat_errors(db_session, make_services, make_user):
    kim, lee = await make_user("kim"), await make_user("lee")
    presence = make_services(db_session).presence
    live = await presence.start_live_session(kim.id)

    with pytest.raises(NotFoundError):
        await presence.heartbeat("missing", kim.id)
    with pytest.raises(AuthorizationError):
        await presence.heartbeat(live.id, lee.id)

    await presence.stop_live_session(kim.id, live.id)
    with pytest.raises(InvalidStateError):
        await presence.heartbeat(live.id, kim.id)


async def test_stop_live_session(db_session, make_services, make_user):
    kim, lee = await make_user("kim"), await make_user("lee")
    presence = make_services(db_session).presence
    live = await presence.start_live_session(kim.id)

    with pytest.raises(AuthorizationError):
        await presence.stop_live_session(lee.id, live.id)

    assert await presence.stop_live_session(kim.id, live.id) == 1
    assert await presence.stop_live_session(kim.id, live.id) == 0
    closed = await presence.live_session_repo.get_by_id(live.id)
    assert not closed.is_live and closed.ended_at is not None

    # closing frees the owner to go live again
    again = await presence.start_live_session(kim.id)
    assert again.id != live.id
    assert await presence.stop_live_session(kim.id) == 1


async def test_stale_sessions_are_found_and_closed(db_session, make_services, make_user, clock):
    kim, lee = await make_user("kim"), await make_user("lee")
    presence = make_services(db_session).presence
    stale = await presence.start_live_session(kim.id)
    clock.advance(60)
    fresh = await presence.start_live_session(lee.id)
    clock.advance(70)

    found = await presence.find_stale_sessions()
    assert [s.id for s in found] == [stale.id]

    assert await presence.close_session(stale.id)
    assert not await presence.close_session(stale.id)
    assert await presence.find_stale_sessions() == []
    assert (await presence.live_session_repo.get_by_id(fresh.id)).is_live


async def test_list_live_sessions_by_scope(db_session, make_services, make_user, clock):
    kim, lee, max_ = await make_user("kim"), await make_user("lee"), await make_user("max")
    svc = make_services(db_session)
    request = await svc.friends.send_request(kim.id, lee.id)
    await svc.friends.respond(request.id, lee.id, "accept")

    lee_live = await svc.presence.start_live_session(lee.id, privacy=LiveSessionPrivacy.FRIENDS)
    max_live = await svc.presence.start_live_session(max_.id)

    friends = await svc.presence.list_live_sessions(kim.id, LiveScope.FRIENDS)
    assert [s.id for s in friends] == [lee_live.id]

    discover = await svc.presence.list_live_sessions(kim.id, "discover")
    assert [s.id for s in discover] == [max_live.id]

    mine = await svc.presence.list_live_sessions(lee.id, LiveScope.ME)
    assert [s.id for s in mine] == [lee_live.id]

    assert await svc.presence.list_live_sessions(max_.id, LiveScope.FRIENDS) == []

    # stale sessions drop out of friends and discover, but not out of "me"
    clock.advance(121)
    assert await svc.presence.list_live_sessions(kim.id, LiveScope.FRIENDS) == []
    assert await svc.presence.list_live_sessions(kim.id, LiveScope.DISCOVER) == []
    assert len(await svc.presence.list_live_sessions(lee.id, LiveScope.ME)) == 1

    with pytest.raises(ValidationError):
        await svc.presence.list_live_sessions(kim.id, "everyone")
