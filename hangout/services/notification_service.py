"""
Central notification delivery: one function for in-app inbox, WebSocket, and push.

Core services talk to the Notifier protocol; InboxNotifier is the production
implementation. Handles:
- DB notification (inbox, read/unread)
- real-time notification.new on the recipient's user topic
- Push (FCM) when configured
"""
import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from hangout.domain.common.channels import EventPublisher, publish_best_effort
from hangout.domain.common.types import user_topic
from hangout.infra.db.models.notification import NotificationModel
from hangout.infra.db.repositories.notification_repo import NotificationRepository
from hangout.infra.push.sender import send_push_to_user

logger = logging.getLogger(__name__)


def notification_payload(notif: NotificationModel) -> dict[str, Any]:
    ts_ms = int(notif.created_at.timestamp() * 1000) if notif.created_at else 0
    return {
        "id": notif.id,
        "type": notif.type,
        "title": notif.title,
        "message": notif.message,
        "data": notif.data or {},
        "read": notif.read,
        "timestamp": ts_ms,
    }


async def deliver_notification(
    session: AsyncSession,
    user_id: str,
    type: str,
    title: str,
    message: str,
    *,
    data: Optional[dict[str, Any]] = None,
    publisher: Optional[EventPublisher] = None,
) -> NotificationModel:
    """
    Create the inbox row, then publish it in real time and push it to devices.

    Args:
        session: DB session (for create + push token lookup).
        user_id: Recipient user id.
        type: Notification type (e.g. friend_request, friend_accepted).
        title: Title for inbox and push.
        message: Body for inbox and push.
        data: Optional dict stored with the row and sent with the payloads.
        publisher: Real-time publisher; skipped when None.

    Returns:
        The created NotificationModel.
    """
    repo = NotificationRepository(session)
    notif = await repo.create(user_id=user_id, type=type, title=title, message=message, data=data)
    await publish_best_effort(publisher, user_topic(user_id), "notification.new", notification_payload(notif))
    try:
        await send_push_to_user(
            session,
            user_id,
            notif.title,
            notif.message,
            {"notificationId": notif.id, "type": notif.type, **(data or {})},
        )
    except Exception as e:
        logger.warning("Push send failed for user %s: %s", user_id, e)
    return notif


class InboxNotifier:
    """Notifier that delivers through the inbox, real-time channel and push."""

    def __init__(self, session: AsyncSession, publisher: Optional[EventPublisher] = None):
        self.session = session
        self.publisher = publisher

    async def notify(
        self,
        user_id: str,
        kind: str,
        title: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        try:
            await deliver_notification(
                self.session, user_id, kind, title, message, data=data, publisher=self.publisher
            )
        except Exception:
            # Leave the caller's session usable; notify_best_effort logs the failure
            await self.session.rollback()
            raise
