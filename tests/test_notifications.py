"""Inbox notifier: DB row, real-time notification.new, push skipped when disabled."""
import pytest

from hangout.infra.db.repositories.notification_repo import NotificationRepository
from hangout.services.notification_service import InboxNotifier


async def test_notify_creates_inbox_row(db_session, make_user, publisher):
    kim = await make_user("kim")
    notifier = InboxNotifier(db_session, publisher)

    await notifier.notify(kim.id, "friend_request", "New friend request", "Lee sent you a friend request", {"fromUserId": "lee"})

    repo = NotificationRepository(db_session)
    rows = await repo.list_by_user(kim.id)
    assert len(rows) == 1
    assert rows[0].type == "friend_request"
    assert rows[0].data == {"fromUserId": "lee"}
    assert await repo.count_unread(kim.id) == 1

    (topic, event_type, payload), = publisher.events
    assert topic == f"user:{kim.id}"
    assert event_type == "notification.new"
    assert payload["id"] == rows[0].id and payload["read"] is False


async def test_mark_read(db_session, make_user):
    kim = await make_user("kim")
    notifier = InboxNotifier(db_session)
    for i in range(3):
        await notifier.notify(kim.id, "friend_accepted", "Accepted", f"#{i}")

    repo = NotificationRepository(db_session)
    first = (await repo.list_by_user(kim.id))[0]
    assert await repo.mark_read(first.id, kim.id)
    assert not await repo.mark_read(first.id, "someone-else")
    assert await repo.count_unread(kim.id) == 2
    assert await repo.mark_all_read(kim.id) == 2
    assert await repo.count_unread(kim.id) == 0


async def test_notify_failure_rolls_back_and_raises(db_session, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr("hangout.services.notification_service.deliver_notification", broken)
    with pytest.raises(RuntimeError):
        await InboxNotifier(db_session).notify("u1", "friend_request", "t", "m")
    assert not db_session.in_transaction()


async def test_friend_request_notifies_through_inbox(db_session, make_services, make_user, publisher):
    kim, lee = await make_user("kim"), await make_user("lee")
    svc = make_services(db_session, notifier=InboxNotifier(db_session, publisher))

    await svc.friends.send_request(kim.id, lee.id)

    rows = await NotificationRepository(db_session).list_by_user(lee.id)
    assert [r.type for r in rows] == ["friend_request"]
    assert rows[0].message == "Kim sent you a friend request"
