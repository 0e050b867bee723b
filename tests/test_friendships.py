"""Tests for the friendship ledger."""
import asyncio

import pytest

from hangout.domain.common.errors import (
    AlreadyExistsError,
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from hangout.domain.friends.models import FriendDecision, FriendshipStatus


async def test_send_request_creates_pending_row_and_notifies(db_session, make_services, make_user, publisher, notifier):
    alice, bob = await make_user("alice"), await make_user("bob")
    svc = make_services(db_session)

    friendship = await svc.friends.send_request(alice.id, bob.id)

    assert friendship.status == FriendshipStatus.PENDING
    assert friendship.requester_id == alice.id
    assert friendship.recipient_id == bob.id
    assert publisher.events == [
        (f"user:{bob.id}", "friend_request", {"friendshipId": friendship.id, "fromUserId": alice.id})
    ]
    assert [n["kind"] for n in notifier.sent] == ["friend_request"]
    assert notifier.sent[0]["user_id"] == bob.id


async def test_send_request_to_self_is_invalid(db_session, make_services, make_user):
    alice = await make_user("alice")
    with pytest.raises(ValidationError):
        await make_services(db_session).friends.send_request(alice.id, alice.id)


async def test_send_request_to_unknown_user(db_session, make_services, make_user):
    alice = await make_user("alice")
    with pytest.raises(NotFoundError):
        await make_services(db_session).friends.send_request(alice.id, "no-such-user")


async def test_reverse_request_is_rejected_while_pending(db_session, make_services, make_user):
    alice, bob = await make_user("alice"), await make_user("bob")
    svc = make_services(db_session)
    await svc.friends.send_request(alice.id, bob.id)

    with pytest.raises(AlreadyExistsError):
        await svc.friends.send_request(bob.id, alice.id)
    with pytest.raises(AlreadyExistsError):
        await svc.friends.send_request(alice.id, bob.id)


async def test_concurrent_opposite_requests_leave_one_row(session_factory, make_services, make_user):
    alice, bob = await make_user("alice"), await make_user("bob")

    async def send(requester, recipient):
        async with session_factory() as session:
            return await make_services(session).friends.send_request(requester.id, recipient.id)

    results = await asyncio.gather(send(alice, bob), send(bob, alice), return_exceptions=True)

    created = [r for r in results if not isinstance(r, Exception)]
    failed = [r for r in results if isinstance(r, Exception)]
    assert len(created) == 1
    assert len(failed) == 1 and isinstance(failed[0], AlreadyExistsError)

    async with session_factory() as session:
        row = await make_services(session).friends.friendship_repo.get_between(alice.id, bob.id)
    assert row is not None and row.id == created[0].id


async def test_respond_accept_then_second_respond_is_invalid_state(db_session, make_services, make_user, publisher, notifier):
    alice, bob = await make_user("alice"), await make_user("bob")
    svc = make_services(db_session)
    friendship = await svc.friends.send_request(alice.id, bob.id)

    accepted = await svc.friends.respond(friendship.id, bob.id, "accept")
    assert accepted.status == FriendshipStatus.ACCEPTED
    assert (f"user:{alice.id}", "friend_response", {"friendshipId": friendship.id, "accepted": True}) in publisher.events
    assert notifier.sent[-1]["kind"] == "friend_accepted"
    assert notifier.sent[-1]["user_id"] == alice.id

    with pytest.raises(InvalidStateError):
        await svc.friends.respond(friendship.id, bob.id, FriendDecision.REJECT)


async def test_concurrent_responses_yield_one_success(session_factory, make_services, make_user):
    alice, bob = await make_user("alice"), await make_user("bob")
    async with session_factory() as session:
        friendship = await make_services(session).friends.send_request(alice.id, bob.id)

    async def respond(decision):
        async with session_factory() as session:
            return await make_services(session).friends.respond(friendship.id, bob.id, decision)

    results = await asyncio.gather(respond("accept"), respond("reject"), return_exceptions=True)
    assert sum(1 for r in results if not isinstance(r, Exception)) == 1
    assert sum(1 for r in results if isinstance(r, InvalidStateError)) == 1


async def test_only_recipient_may_respond(db_session, make_services, make_user):
    alice, bob, carol = await make_user("alice"), await make_user("bob"), await make_user("carol")
    svc = make_services(db_session)
    friendship = await svc.friends.send_request(alice.id, bob.id)

    with pytest.raises(AuthorizationError):
        await svc.friends.respond(friendship.id, alice.id, "accept")
    with pytest.raises(AuthorizationError):
        await svc.friends.respond(friendship.id, carol.id, "accept")


async def test_respond_validates_decision_and_existence(db_session, make_services, make_user):
    alice, bob = await make_user("alice"), await make_user("bob")
    svc = make_services(db_session)
    friendship = await svc.friends.send_request(alice.id, bob.id)

    with pytest.raises(ValidationError):
        await svc.friends.respond(friendship.id, bob.id, "maybe")
    with pytest.raises(NotFoundError):
        await svc.friends.respond("missing", bob.id, "accept")


async def test_reject_notifies_requester_and_blocks_rerequest(db_session, make_services, make_user, notifier):
    alice, bob = await make_user("alice"), await make_user("bob")
    svc = make_services(db_session)
    friendship = await svc.friends.send_request(alice.id, bob.id)

    rejected = await svc.friends.respond(friendship.id, bob.id, "reject")
    assert rejected.status == FriendshipStatus.REJECTED
    assert notifier.sent[-1]["kind"] == "friend_rejected"

    with pytest.raises(AlreadyExistsError):
        await svc.friends.send_request(alice.id, bob.id)


async def test_unfriend_then_rerequest_succeeds(db_session, make_services, make_user):
    alice, bob = await make_user("alice"), await make_user("bob")
    svc = make_services(db_session)
    friendship = await svc.friends.send_request(alice.id, bob.id)
    await svc.friends.respond(friendship.id, bob.id, "accept")
    assert await svc.friends.are_friends(alice.id, bob.id)

    await svc.friends.unfriend(bob.id, alice.id)
    assert not await svc.friends.are_friends(alice.id, bob.id)

    again = await svc.friends.send_request(bob.id, alice.id)
    assert again.status == FriendshipStatus.PENDING
    assert again.requester_id == bob.id


async def test_unfriend_without_accepted_row_is_not_found(db_session, make_services, make_user):
    alice, bob = await make_user("alice"), await make_user("bob")
    svc = make_services(db_session)
    await svc.friends.send_request(alice.id, bob.id)

    with pytest.raises(NotFoundError):
        await svc.friends.unfriend(alice.id, bob.id)


async def test_list_friends_uses_friend_list_window(db_session, make_services, make_user, clock):
    alice, bob, carol = await make_user("alice"), await make_user("bob"), await make_user("carol")
    svc = make_services(db_session)
    for other in (bob, carol):
        f = await svc.friends.send_request(alice.id, other.id)
        await svc.friends.respond(f.id, other.id, "accept")

    await svc.presence.touch(bob.id)
    clock.advance(200)  # outside the 120 s general window, inside the 300 s friend window

    friends = {f.username: f for f in await svc.friends.list_friends(alice.id)}
    assert set(friends) == {"bob", "carol"}
    assert friends["bob"].is_online is True
    assert friends["carol"].is_online is False
    assert await svc.presence.is_online(bob.id) is False


async def test_list_pending_shows_incoming_only(db_session, make_services, make_user):
    alice, bob, carol = await make_user("alice"), await make_user("bob"), await make_user("carol")
    svc = make_services(db_session)
    await svc.friends.send_request(alice.id, bob.id)
    await svc.friends.send_request(carol.id, bob.id)
    dave = await make_user("dave")
    await svc.friends.send_request(bob.id, dave.id)

    pending = await svc.friends.list_pending(bob.id)
    assert sorted(p.from_username for p in pending) == ["alice", "carol"]
    assert await svc.friends.list_pending(alice.id) == []
    assert len(await svc.friends.list_pending(dave.id)) == 1


async def test_publish_and_notify_failures_do_not_fail_request(
    db_session, make_services, make_user, failing_publisher, failing_notifier
):
    alice, bob = await make_user("alice"), await make_user("bob")
    svc = make_services(db_session, publisher=failing_publisher, notifier=failing_notifier)

    friendship = await svc.friends.send_request(alice.id, bob.id)
    assert friendship.status == FriendshipStatus.PENDING
    accepted = await svc.friends.respond(friendship.id, bob.id, "accept")
    assert accepted.status == FriendshipStatus.ACCEPTED
