"""Tests for shared helpers: keyed locks, best-effort channels, pair keys."""
import asyncio

from hangout.domain.chat.models import Reaction, reactions_payload, toggle_reactions
from hangout.domain.common.channels import KeyedLock, notify_best_effort, publish_best_effort
from hangout.domain.common.types import pair_key


def test_pair_key_is_order_independent():
    assert pair_key("b", "a") == pair_key("a", "b") == "a:b"


async def test_keyed_lock_serializes_same_key():
    locks = KeyedLock()
    order = []

    async def worker(name, key, delay):
        async with locks.hold(key):
            order.append(f"{name}-in")
            await asyncio.sleep(delay)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a", "room-1", 0.02), worker("b", "room-1", 0))
    assert order == ["a-in", "a-out", "b-in", "b-out"]
    assert len(locks) == 0


async def test_keyed_lock_does_not_block_other_keys():
    locks = KeyedLock()
    entered = asyncio.Event()

    async def holder():
        async with locks.hold("room-1"):
            await entered.wait()

    task = asyncio.create_task(holder())
    await asyncio.sleep(0)
    async with locks.hold("room-2"):
        entered.set()
    await task
    assert len(locks) == 0


async def test_best_effort_publish(publisher, failing_publisher):
    assert await publish_best_effort(publisher, "room:x", "message", {"a": 1})
    assert publisher.events == [("room:x", "message", {"a": 1})]
    assert not await publish_best_effort(failing_publisher, "room:x", "message", {})
    assert not await publish_best_effort(None, "room:x", "message", {})


async def test_best_effort_notify(notifier, failing_notifier):
    assert await notify_best_effort(notifier, "u1", "friend_request", "Title", "Body")
    assert notifier.sent[0]["kind"] == "friend_request"
    assert not await notify_best_effort(failing_notifier, "u1", "friend_request", "Title", "Body")
    assert not await notify_best_effort(None, "u1", "friend_request", "Title", "Body")


def test_toggle_reactions_preserves_order():
    reactions = [Reaction(user_id="u1", emoji="👍"), Reaction(user_id="u2", emoji="👍")]

    added = toggle_reactions(reactions, "u1", "🎉")
    assert [(r.user_id, r.emoji) for r in added] == [("u1", "👍"), ("u2", "👍"), ("u1", "🎉")]

    removed = toggle_reactions(added, "u1", "👍")
    assert [(r.user_id, r.emoji) for r in removed] == [("u2", "👍"), ("u1", "🎉")]
    assert reactions_payload(removed) == [{"userId": "u2", "emoji": "👍"}, {"userId": "u1", "emoji": "🎉"}]
