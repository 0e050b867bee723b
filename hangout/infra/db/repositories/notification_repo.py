"""Notification repository."""
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hangout.domain.common.types import generate_id, utcnow
from hangout.infra.db.models.notification import NotificationModel


class NotificationRepository:
    """Notification repository."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self, user_id: str, type: str, title: str, message: str, data: Optional[dict] = None
    ) -> NotificationModel:
        """Create a notification."""
        model = NotificationModel(
            id=generate_id(),
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            data=data,
            read=False,
            created_at=utcnow(),
        )
        self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)
        return model

    async def list_by_user(
        self, user_id: str, limit: int = 50, type: Optional[str] = None
    ) -> List[NotificationModel]:
        """List notifications for a user, newest first. Optional filter by type."""
        q = (
            select(NotificationModel)
            .where(NotificationModel.user_id == user_id)
            .order_by(NotificationModel.created_at.desc())
            .limit(limit)
        )
        if type is not None:
            q = q.where(NotificationModel.type == type)
        result = await self.session.execute(q)
        return list(result.scalars().all())

    async def count_unread(self, user_id: str) -> int:
        """Count unread notifications for a user."""
        result = await self.session.execute(
            select(func.count()).select_from(NotificationModel).where(
                NotificationModel.user_id == user_id,
                NotificationModel.read.is_(False),
            )
        )
        return result.scalar() or 0

    async def mark_read(self, notification_id: str, user_id: str) -> bool:
        """Mark a notification as read. Returns True if found and updated."""
        result = await self.session.execute(
            update(NotificationModel)
            .where(
                NotificationModel.id == notification_id,
                NotificationModel.user_id == user_id,
            )
            .values(read=True)
        )
        await self.session.commit()
        return result.rowcount > 0

    async def mark_all_read(self, user_id: str) -> int:
        """Mark all notifications as read for a user. Returns count updated."""
        result = await self.session.execute(
            update(NotificationModel)
            .where(NotificationModel.user_id == user_id, NotificationModel.read.is_(False))
            .values(read=True)
        )
        await self.session.commit()
        return result.rowcount or 0
